"""User progress: the collaborator the engine reports completed levels to."""
import json
import logging
import os
import time
from dataclasses import asdict, dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Session:
    in_time: float
    out_time: float = None
    duration: str = None


@dataclass
class UserRecord:
    user_id: str
    current_level: int = 1
    history: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data):
        return cls(
            user_id=data["user_id"],
            current_level=int(data.get("current_level", 1)),
            history=[Session(**s) for s in data.get("history", [])],
        )


class ProgressStore:
    """Interface the engine and app rely on."""

    def login(self, user_id):
        raise NotImplementedError

    def get_current_level(self, user_id):
        raise NotImplementedError

    def advance_level(self, user_id):
        raise NotImplementedError

    def on_level_complete(self, user_id):
        # Ending the session here would cut off "next level" play; only advance.
        self.advance_level(user_id)


def format_duration(seconds):
    seconds = int(seconds)
    return f"{seconds // 3600}h {(seconds // 60) % 60}m {seconds % 60}s"


class JsonProgressStore(ProgressStore):
    """All users in one JSON file, rewritten on every change."""

    def __init__(self, path, clock=time.time):
        self.path = path
        self.clock = clock

    def _read(self):
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as f:
                raw = json.load(f)
            return {u["user_id"]: UserRecord.from_dict(u) for u in raw}
        except OSError as exc:
            logger.warning("progress file %s unreadable, starting fresh: %s", self.path, exc)
            return {}
        except (ValueError, KeyError, TypeError) as exc:
            # Keep the damaged records so the next write cannot destroy them.
            backup = self.path + ".bad"
            os.replace(self.path, backup)
            logger.warning("progress file %s is damaged (%s); moved it to %s", self.path, exc, backup)
            return {}

    def _write(self, users):
        folder = os.path.dirname(self.path)
        if folder and not os.path.exists(folder):
            os.makedirs(folder)
        with open(self.path, "w") as f:
            json.dump([asdict(u) for u in users.values()], f, indent=2)

    def login(self, user_id):
        users = self._read()
        user = users.get(user_id)
        if user is None:
            user = UserRecord(user_id)
            users[user_id] = user
            logger.info("created progress record for %s", user_id)
        self._write(users)
        return user

    def get_current_level(self, user_id):
        return self.login(user_id).current_level

    def advance_level(self, user_id):
        users = self._read()
        user = users.get(user_id) or UserRecord(user_id)
        user.current_level += 1
        users[user_id] = user
        self._write(users)
        logger.info("%s advanced to level %d", user_id, user.current_level)
        return user.current_level

    def record_session_start(self, user_id):
        users = self._read()
        user = users.setdefault(user_id, UserRecord(user_id))
        now = self.clock()
        # A session left open by a crash is closed when the next one starts.
        if user.history and user.history[-1].out_time is None:
            self._close(user.history[-1], now)
        user.history.append(Session(in_time=now))
        self._write(users)

    def record_session_end(self, user_id):
        users = self._read()
        user = users.get(user_id)
        if user is None or not user.history or user.history[-1].out_time is not None:
            return
        self._close(user.history[-1], self.clock())
        self._write(users)

    @staticmethod
    def _close(session, now):
        session.out_time = now
        session.duration = format_duration(now - session.in_time)
