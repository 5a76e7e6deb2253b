# statsummoner/modules/follow_games/models.py

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Riot platform routing value -> regional routing value used by account-v1 and match-v5.
PLATFORM_TO_REGION = {
    'euw1': 'europe',
    'eun1': 'europe',
    'tr1': 'europe',
    'ru': 'europe',
    'na1': 'americas',
    'br1': 'americas',
    'la1': 'americas',
    'la2': 'americas',
    'kr': 'asia',
    'jp1': 'asia',
    'oc1': 'sea',
}

# Choices offered by the follow command.
REGION_CHOICES = {
    'EUW': 'euw1',
    'EUNE': 'eun1',
    'NA': 'na1',
    'KR': 'kr',
    'JP': 'jp1',
    'BR': 'br1',
    'LAN': 'la1',
    'LAS': 'la2',
    'OCE': 'oc1',
    'RU': 'ru',
    'TR': 'tr1',
}

QUEUE_ID_MAP = {
    400: "Normal Draft",
    420: "Ranked Solo/Duo",
    430: "Normal Blind",
    440: "Ranked Flex",
    450: "ARAM",
    700: "Clash",
    830: "Co-op vs AI Intro",
    840: "Co-op vs AI Beginner",
    850: "Co-op vs AI Intermediate",
    900: "URF",
}

ROLE_ORDER = ("TOP", "JUNGLE", "MIDDLE", "BOTTOM", "UTILITY")


@dataclass
class FollowRecord:
    """
    A player followed from one guild.
    Maps to the 'followed_summoners' table.
    """
    puuid: str
    summoner_id: str
    name: str
    tag: str
    region: str
    last_match_id: str
    time_end_follow: int
    channel_id: int
    guild_id: int
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: dict) -> "FollowRecord":
        """Decode a stored row. Raises KeyError / ValueError / TypeError on malformed data."""
        puuid = row['puuid']
        if not puuid:
            raise ValueError("empty puuid")
        return cls(
            puuid=puuid,
            summoner_id=row['summoner_id'] or "",
            name=row['name'] or "",
            tag=row['tag'] or "",
            region=row['region'] or "",
            last_match_id=row['last_match_id'] or "",
            time_end_follow=int(row['time_end_follow']),
            channel_id=int(row['channel_id']),
            guild_id=int(row['guild_id']),
            id=row.get('id'),
        )

    def is_expired(self, now: int) -> bool:
        return now > self.time_end_follow

    @property
    def riot_id(self) -> str:
        return f"{self.name}#{self.tag}" if self.tag else self.name


@dataclass
class Participant:
    """One player in a match-v5 response. Every wire field is optional."""
    puuid: str = ""
    summoner_id: str = ""
    summoner_name: str = ""
    riot_id_game_name: str = ""
    champion_name: str = "Unknown"
    team_id: int = 0
    team_position: str = "UNKNOWN"
    win: bool = False
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    total_minions_killed: int = 0
    neutral_minions_killed: int = 0
    gold_earned: int = 0
    vision_score: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Participant":
        return cls(
            puuid=data.get('puuid') or "",
            summoner_id=data.get('summonerId') or "",
            summoner_name=data.get('summonerName') or "",
            riot_id_game_name=data.get('riotIdGameName') or "",
            champion_name=data.get('championName') or "Unknown",
            team_id=int(data.get('teamId') or 0),
            team_position=data.get('teamPosition') or "UNKNOWN",
            win=bool(data.get('win', False)),
            kills=int(data.get('kills') or 0),
            deaths=int(data.get('deaths') or 0),
            assists=int(data.get('assists') or 0),
            total_minions_killed=int(data.get('totalMinionsKilled') or 0),
            neutral_minions_killed=int(data.get('neutralMinionsKilled') or 0),
            gold_earned=int(data.get('goldEarned') or 0),
            vision_score=int(data.get('visionScore') or 0),
        )


@dataclass
class MatchDetail:
    """The parts of a match-v5 match the follow notifications need."""
    match_id: str
    queue_id: int = -1
    game_duration: int = 0
    participants: list[Participant] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "MatchDetail":
        """Decode a match-v5 payload. Raises ValueError when the payload is not a match."""
        if not isinstance(data, dict):
            raise ValueError("match payload is not an object")
        match_id = (data.get('metadata') or {}).get('matchId')
        info = data.get('info')
        if not match_id or not isinstance(info, dict):
            raise ValueError("match payload has no metadata.matchId or info")
        participants = info.get('participants')
        if not isinstance(participants, list):
            raise ValueError(f"match {match_id} has no participants list")
        queue_id = info.get('queueId')
        return cls(
            match_id=match_id,
            queue_id=int(queue_id) if queue_id is not None else -1,
            game_duration=int(info.get('gameDuration') or 0),
            participants=[Participant.from_json(p) for p in participants if isinstance(p, dict)],
        )


@dataclass
class PlayerLine:
    summoner_name: str
    champion_name: str
    kills: int
    deaths: int
    assists: int
    total_farm: int
    gold_earned: int
    vision_score: int


@dataclass
class RoleMatchup:
    role: str
    team: PlayerLine
    enemy: PlayerLine


@dataclass
class MatchSummary:
    """What a follow notification says about one finished match."""
    match_id: str
    player_name: str
    game_mode: str
    game_result: str
    game_duration: str
    matchups: list[RoleMatchup] = field(default_factory=list)

    @property
    def is_victory(self) -> bool:
        return self.game_result == "Victory"


class RecordOutcome(Enum):
    EXPIRED = "expired"
    UNCHANGED = "unchanged"
    NOTIFIED = "notified"
    # new match stored, but no notification went out
    UPDATED = "updated"
    FAILED = "failed"


class FollowResult(Enum):
    CREATED = 1
    REFRESHED = 2


@dataclass
class NotificationResult:
    sent: bool
    error: Optional[str] = None


@dataclass
class PassReport:
    """Outcome counts for one pass over every follow record."""
    total: int = 0
    expired: int = 0
    unchanged: int = 0
    notified: int = 0
    updated: int = 0
    failed: int = 0

    def add(self, outcome: RecordOutcome):
        self.total += 1
        if outcome is RecordOutcome.EXPIRED:
            self.expired += 1
        elif outcome is RecordOutcome.UNCHANGED:
            self.unchanged += 1
        elif outcome is RecordOutcome.NOTIFIED:
            self.notified += 1
        elif outcome is RecordOutcome.UPDATED:
            self.updated += 1
        else:
            self.failed += 1
