"""
Kurimuzon — Progress Store
JSON-backed per-user experience, levels, and guessing-game state.
"""

from __future__ import annotations

import json
import logging
import random
import threading
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger("kurimuzon.progress")

GAME_MIN = 1
GAME_MAX = 10
GUESS_REWARD_XP = 20
GAME_PROMPT = "🎲 Uhm... guess a number between 1 and 10. Use `.guess <number>`"


class ProgressError(RuntimeError):
    """Base class for progress store errors."""


class NoActiveGame(ProgressError):
    """Raised when a guess arrives without an open guessing round."""

    def __init__(self, user: str):
        super().__init__(f"no active game for {user}")
        self.user = user


@dataclass
class UserProgress:
    experience: int = 0
    level: int = 1
    pending_game_number: int | None = None

    @property
    def threshold(self) -> int:
        return self.level * 100

    def to_json(self) -> dict:
        data = {"xp": self.experience, "level": self.level}
        if self.pending_game_number is not None:
            data["game"] = self.pending_game_number
        return data

    @classmethod
    def from_json(cls, data: dict) -> "UserProgress":
        """Rebuild a record; a bad open round is dropped without losing XP or level."""
        experience = int(data.get("xp", 0))
        level = int(data.get("level", 1))
        game = data.get("game")
        if not (isinstance(game, int) and not isinstance(game, bool) and GAME_MIN <= game <= GAME_MAX):
            if game is not None:
                log.warning(f"Dropping invalid open round {game!r}")
            game = None
        return cls(
            experience=max(0, experience),
            level=max(1, level),
            pending_game_number=game,
        )


@dataclass(frozen=True)
class ProfileSnapshot:
    experience: int
    level: int


@dataclass(frozen=True)
class LevelUp:
    user: str
    level: int


@dataclass(frozen=True)
class GuessResult:
    correct: bool
    answer: int
    level_up: LevelUp | None = None


class ProgressStore:
    """
    Durable mapping of user id → progression record.

    The whole document is rewritten after every mutation (write-through).
    All operations go through one lock so a record is never read-modified-written
    by two callers at once.
    """

    def __init__(self, path: str | Path, rng: random.Random | None = None):
        self.path = Path(path)
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._records: dict[str, UserProgress] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ── Persistence ───────────────────────────────────────────

    def load(self):
        """Restore the mapping from disk; missing or malformed files give an empty mapping."""
        with self._lock:
            self._records = self._read()
            log.info(f"Loaded progress for {len(self._records)} user(s) from {self.path}")

    def _read(self) -> dict[str, UserProgress]:
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning(f"Ignoring unreadable progress file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            log.warning(f"Ignoring progress file {self.path}: expected a JSON object")
            return {}

        records: dict[str, UserProgress] = {}
        for user, raw in data.items():
            if not isinstance(raw, dict):
                log.warning(f"Skipping malformed progress record for {user}")
                continue
            try:
                records[str(user)] = UserProgress.from_json(raw)
            except (TypeError, ValueError):
                log.warning(f"Skipping malformed progress record for {user}")
        return records

    def _save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = {user: record.to_json() for user, record in self._records.items()}
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    # ── Experience ────────────────────────────────────────────

    def _record(self, user: str) -> UserProgress:
        record = self._records.get(user)
        if record is None:
            record = UserProgress()
            self._records[user] = record
        return record

    def add_experience(self, user: str, amount: int) -> LevelUp | None:
        """Add XP and advance at most one level. Returns the level-up, if any."""
        if amount <= 0:
            return None

        with self._lock:
            record = self._record(user)
            record.experience += amount
            level_up = None
            # One level per call even if several thresholds were crossed.
            if record.experience >= record.threshold:
                record.level += 1
                level_up = LevelUp(user=user, level=record.level)
                log.info(f"[{user}] Level up → {record.level} ({record.experience} XP)")
            self._save()
            return level_up

    def get_profile(self, user: str) -> ProfileSnapshot:
        with self._lock:
            record = self._records.get(user)
            if record is None:
                return ProfileSnapshot(experience=0, level=1)
            return ProfileSnapshot(experience=record.experience, level=record.level)

    # ── Guessing game ─────────────────────────────────────────

    def start_game(self, user: str) -> str:
        """Open a guessing round (replacing any open one) and return the prompt."""
        with self._lock:
            record = self._record(user)
            record.pending_game_number = self._rng.randint(GAME_MIN, GAME_MAX)
            self._save()
            return GAME_PROMPT

    def resolve_guess(self, user: str, guess: int) -> GuessResult:
        """Close the user's round, awarding GUESS_REWARD_XP on a match."""
        with self._lock:
            record = self._records.get(user)
            if record is None or record.pending_game_number is None:
                raise NoActiveGame(user)

            answer = record.pending_game_number
            record.pending_game_number = None
            if guess == answer:
                # add_experience persists, which also records the cleared round.
                level_up = self.add_experience(user, GUESS_REWARD_XP)
                return GuessResult(correct=True, answer=answer, level_up=level_up)

            self._save()
            return GuessResult(correct=False, answer=answer)
