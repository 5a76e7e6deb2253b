from statsummoner.modules.follow_games.models import MatchDetail, NotificationResult

NOW = 1_700_000_000


def make_match_json(match_id: str, followed_puuid: str = "P1", win: bool = True, queue_id: int = 420) -> dict:
    """A ten-player match-v5 payload; the followed player plays MIDDLE on team 100."""
    roles = ["TOP", "JUNGLE", "MIDDLE", "BOTTOM", "UTILITY"]
    participants = []
    for team_id in (100, 200):
        for i, role in enumerate(roles):
            puuid = followed_puuid if (team_id == 100 and role == "MIDDLE") else f"{team_id}-{role}"
            participants.append({
                "puuid": puuid,
                "summonerId": f"sid-{puuid}",
                "summonerName": "" if role == "JUNGLE" else f"name-{puuid}",
                "riotIdGameName": f"riot-{puuid}",
                "championName": f"Champ{team_id}{i}",
                "teamId": team_id,
                "teamPosition": role,
                "win": win if team_id == 100 else not win,
                "kills": 5, "deaths": 2, "assists": 7,
                "totalMinionsKilled": 150, "neutralMinionsKilled": 12,
                "goldEarned": 12345, "visionScore": 20,
            })
    return {
        "metadata": {"matchId": match_id},
        "info": {"queueId": queue_id, "gameDuration": 1754, "participants": participants},
    }


class FakeRiotClient:
    """Latest match id per puuid; puuids listed in `failing` raise on lookup."""

    def __init__(self, latest: dict[str, str], failing: set[str] = frozenset()):
        self.latest = latest
        self.failing = set(failing)
        self.match_requests: list[str] = []

    async def get_match_ids(self, puuid, platform, count=1):
        if puuid in self.failing:
            raise RuntimeError(f"riot unavailable for {puuid}")
        latest = self.latest.get(puuid)
        return [latest] if latest else []

    async def get_match(self, match_id, platform):
        self.match_requests.append(match_id)
        puuid = next(p for p, m in self.latest.items() if m == match_id)
        return MatchDetail.from_json(make_match_json(match_id, followed_puuid=puuid))


class FakeNotificationService:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_match_notification(self, channel_id, summary):
        if self.fail:
            return NotificationResult(sent=False, error="forbidden")
        self.sent.append((channel_id, summary))
        return NotificationResult(sent=True)


async def add_follow(follow_service, puuid="P1", guild_id=1, last_match_id="M1", time_end_follow=NOW + 3600, channel_id=10):
    return await follow_service.follow_summoner(
        puuid=puuid,
        summoner_id=f"sid-{puuid}",
        name=f"Player{puuid}",
        tag="EUW",
        region="euw1",
        last_match_id=last_match_id,
        time_end_follow=time_end_follow,
        channel_id=channel_id,
        guild_id=guild_id,
    )
