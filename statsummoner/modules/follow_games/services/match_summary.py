# statsummoner/modules/follow_games/services/match_summary.py

from typing import Optional
from statsummoner.modules.follow_games.models import (
    MatchDetail, MatchSummary, Participant, PlayerLine, RoleMatchup, QUEUE_ID_MAP, ROLE_ORDER
)


def game_mode_name(queue_id: int) -> str:
    return QUEUE_ID_MAP.get(queue_id, "Unknown")


def format_duration(seconds: int) -> str:
    """1754 -> '29:14'"""
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes}:{secs:02d}"


def format_gold_k(gold: int) -> str:
    """950 -> '950', 12000 -> '12k', 12345 -> '12,3k'"""
    if gold < 1000:
        return str(gold)
    if gold % 1000 == 0:
        return f"{gold // 1000}k"
    return f"{gold / 1000:.1f}".replace('.', ',') + "k"


def _player_line(p: Participant) -> PlayerLine:
    return PlayerLine(
        summoner_name=p.summoner_name or p.riot_id_game_name or "Unknown",
        champion_name=p.champion_name,
        kills=p.kills,
        deaths=p.deaths,
        assists=p.assists,
        total_farm=p.total_minions_killed + p.neutral_minions_killed,
        gold_earned=p.gold_earned,
        vision_score=p.vision_score,
    )


def find_participant(detail: MatchDetail, puuid: str, summoner_id: str = "") -> Optional[Participant]:
    for p in detail.participants:
        if puuid and p.puuid == puuid:
            return p
    if summoner_id:
        for p in detail.participants:
            if p.summoner_id == summoner_id:
                return p
    return None


def build_match_summary(
    detail: MatchDetail,
    puuid: str,
    summoner_id: str,
    player_name: str
) -> Optional[MatchSummary]:
    """
    Lane-by-lane comparison of the followed player's team against the enemy team.
    Returns None if the player is not part of the match.
    """
    player = find_participant(detail, puuid, summoner_id)
    if player is None:
        return None

    allies: dict[str, Participant] = {}
    enemies: dict[str, Participant] = {}
    for p in detail.participants:
        side = allies if p.team_id == player.team_id else enemies
        side[p.team_position] = p

    matchups = [
        RoleMatchup(role=role, team=_player_line(allies[role]), enemy=_player_line(enemies[role]))
        for role in ROLE_ORDER
        if role in allies and role in enemies
    ]

    return MatchSummary(
        match_id=detail.match_id,
        player_name=player_name,
        game_mode=game_mode_name(detail.queue_id),
        game_result="Victory" if player.win else "Defeat",
        game_duration=format_duration(detail.game_duration),
        matchups=matchups,
    )
