import discord
from types import SimpleNamespace
from helpers import make_match_json
from statsummoner.modules.follow_games.models import MatchDetail
from statsummoner.modules.follow_games.services.match_summary import build_match_summary
from statsummoner.modules.follow_games.services.notification_service import NotificationService, build_match_embed


def make_summary(win=True):
    detail = MatchDetail.from_json(make_match_json("EUW1_42", followed_puuid="P1", win=win))
    return build_match_summary(detail, "P1", "", "Faker")


def http_error(cls, status, reason):
    return cls(SimpleNamespace(status=status, reason=reason), "error")


class FakeChannel(discord.abc.Messageable):
    def __init__(self, errors=()):
        self.errors = list(errors)
        self.sent = []

    async def send(self, embed=None):
        if self.errors:
            raise self.errors.pop(0)
        self.sent.append(embed)


class FakeBot:
    def __init__(self, channel=None, fetch_error=None):
        self.cached = None
        self.channel = channel
        self.fetch_error = fetch_error
        self.fetched = []

    def get_channel(self, channel_id):
        return self.cached

    async def fetch_channel(self, channel_id):
        self.fetched.append(channel_id)
        if self.fetch_error:
            raise self.fetch_error
        return self.channel


def test_embed_lists_one_field_per_role():
    embed = build_match_embed(make_summary(win=True))

    assert "Faker" in embed.title
    assert "Ranked Solo/Duo" in embed.title
    assert "Victory" in embed.title
    assert embed.color == discord.Color.green()
    assert [f.name for f in embed.fields] == [
        "**🔼 TOP**", "**🌲 JUNGLE**", "**🛣️ MIDDLE**", "**🔽 BOTTOM**", "**🛡️ SUPPORT**"
    ]
    assert "K/D/A: **5/2/7**" in embed.fields[2].value
    assert "Gold: 12,3k" in embed.fields[2].value
    assert embed.footer.text == "Match EUW1_42"


def test_defeat_embed_is_red():
    embed = build_match_embed(make_summary(win=False))

    assert "Defeat" in embed.title
    assert embed.color == discord.Color.red()


async def test_notification_is_sent_to_fetched_channel():
    channel = FakeChannel()
    bot = FakeBot(channel)

    result = await NotificationService(bot, retry_delay=0).send_match_notification(123, make_summary())

    assert result.sent is True
    assert bot.fetched == [123]
    assert len(channel.sent) == 1


async def test_server_errors_are_retried():
    channel = FakeChannel(errors=[http_error(discord.DiscordServerError, 503, "Service Unavailable")])

    result = await NotificationService(FakeBot(channel), retry_delay=0).send_match_notification(1, make_summary())

    assert result.sent is True
    assert len(channel.sent) == 1


async def test_forbidden_is_reported_not_raised():
    channel = FakeChannel(errors=[http_error(discord.Forbidden, 403, "Forbidden")])

    result = await NotificationService(FakeBot(channel), retry_delay=0).send_match_notification(1, make_summary())

    assert result.sent is False
    assert result.error == "forbidden"


async def test_deleted_channel_is_reported_not_raised():
    bot = FakeBot(fetch_error=http_error(discord.NotFound, 404, "Not Found"))

    result = await NotificationService(bot, retry_delay=0).send_match_notification(1, make_summary())

    assert result.sent is False
    assert result.error == "channel not found"


async def test_persistent_server_error_is_reported():
    errors = [http_error(discord.DiscordServerError, 500, "Internal Server Error") for _ in range(3)]
    channel = FakeChannel(errors=errors)

    result = await NotificationService(FakeBot(channel), retry_delay=0).send_match_notification(1, make_summary())

    assert result.sent is False
    assert result.error == "http 500"


async def test_channel_that_cannot_receive_messages_is_reported():
    bot = FakeBot()
    # a category channel has no send()
    bot.cached = object()

    result = await NotificationService(bot, retry_delay=0).send_match_notification(1, make_summary())

    assert result.sent is False
    assert result.error == "channel not messageable"
    assert bot.fetched == []
