from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LoopHealth:
    name: str
    restarts: int = 0
    last_error: str = ""
    alive: bool = False


@dataclass
class RuntimeHealth:
    loops: dict[str, LoopHealth] = field(default_factory=dict)

    def touch(self, name: str, *, alive: bool | None = None, err: str = "") -> None:
        h = self.loops.get(name)
        if h is None:
            h = LoopHealth(name=name)
            self.loops[name] = h
        if alive is not None:
            h.alive = alive
        if err:
            h.last_error = err

    def restarted(self, name: str, err: Exception) -> None:
        self.touch(name, alive=False, err=str(err))
        self.loops[name].restarts += 1

    def summary(self) -> str:
        if not self.loops:
            return "loops=0"
        up = sum(1 for h in self.loops.values() if h.alive)
        total = len(self.loops)
        restarts = sum(int(h.restarts) for h in self.loops.values())
        failing = sorted(h.name for h in self.loops.values() if h.last_error and not h.alive)
        text = f"loops={up}/{total} restarts={restarts}"
        if failing:
            text += " down=" + ",".join(failing)
        return text
