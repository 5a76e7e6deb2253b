import pytest
from helpers import make_match_json
from statsummoner.modules.follow_games.models import MatchDetail
from statsummoner.modules.follow_games.services.match_summary import (
    build_match_summary, format_duration, format_gold_k, game_mode_name
)


def test_summary_compares_each_role_against_the_enemy():
    detail = MatchDetail.from_json(make_match_json("EUW1_1", followed_puuid="P1", win=True))

    summary = build_match_summary(detail, "P1", "", "Faker")

    assert summary.match_id == "EUW1_1"
    assert summary.player_name == "Faker"
    assert summary.game_mode == "Ranked Solo/Duo"
    assert summary.game_result == "Victory"
    assert summary.game_duration == "29:14"
    assert [m.role for m in summary.matchups] == ["TOP", "JUNGLE", "MIDDLE", "BOTTOM", "UTILITY"]

    mid = summary.matchups[2]
    assert mid.team.summoner_name == "name-P1"
    assert mid.enemy.summoner_name == "name-200-MIDDLE"
    assert mid.team.total_farm == 162
    assert (mid.team.kills, mid.team.deaths, mid.team.assists) == (5, 2, 7)
    # empty summonerName falls back to the Riot id game name
    assert summary.matchups[1].team.summoner_name == "riot-100-JUNGLE"


def test_summary_for_a_loss_on_the_other_team():
    detail = MatchDetail.from_json(make_match_json("EUW1_2", followed_puuid="P1", win=False, queue_id=450))

    summary = build_match_summary(detail, "200-TOP", "", "Someone")

    assert summary.game_result == "Victory"
    assert summary.game_mode == "ARAM"
    assert summary.matchups[0].team.champion_name == "Champ2000"


def test_participant_found_by_summoner_id_when_puuid_differs():
    detail = MatchDetail.from_json(make_match_json("EUW1_3", followed_puuid="P1"))

    summary = build_match_summary(detail, "stale-puuid", "sid-P1", "Faker")

    assert summary is not None
    assert summary.game_result == "Victory"


def test_missing_player_gives_no_summary():
    detail = MatchDetail.from_json(make_match_json("EUW1_4", followed_puuid="P1"))

    assert build_match_summary(detail, "nobody", "sid-nobody", "Ghost") is None


def test_roles_without_an_opponent_are_left_out():
    payload = make_match_json("EUW1_5", followed_puuid="P1")
    payload["info"]["participants"] = [
        p for p in payload["info"]["participants"] if not (p["teamId"] == 200 and p["teamPosition"] == "TOP")
    ]

    summary = build_match_summary(MatchDetail.from_json(payload), "P1", "", "Faker")

    assert [m.role for m in summary.matchups] == ["JUNGLE", "MIDDLE", "BOTTOM", "UTILITY"]


def test_sparse_participant_gets_defaults():
    detail = MatchDetail.from_json({
        "metadata": {"matchId": "NA1_9"},
        "info": {"participants": [{"puuid": "P1"}]},
    })

    assert detail.queue_id == -1
    p = detail.participants[0]
    assert (p.champion_name, p.team_position, p.kills, p.win) == ("Unknown", "UNKNOWN", 0, False)
    summary = build_match_summary(detail, "P1", "", "Faker")
    assert summary.game_mode == "Unknown"
    assert summary.game_duration == "0:00"
    assert summary.matchups == []


@pytest.mark.parametrize("payload", [
    [],
    {"info": {"participants": []}},
    {"metadata": {"matchId": "X"}},
    {"metadata": {"matchId": "X"}, "info": {"participants": None}},
])
def test_payloads_that_are_not_matches_are_rejected(payload):
    with pytest.raises(ValueError):
        MatchDetail.from_json(payload)


def test_formatters():
    assert format_gold_k(950) == "950"
    assert format_gold_k(12000) == "12k"
    assert format_gold_k(12345) == "12,3k"
    assert format_duration(65) == "1:05"
    assert format_duration(1754) == "29:14"
    assert game_mode_name(700) == "Clash"
    assert game_mode_name(1700) == "Unknown"
