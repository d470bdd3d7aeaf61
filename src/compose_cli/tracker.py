"""Step tree shown while a command runs."""

from dataclasses import dataclass
from typing import Callable

from rich.markup import escape
from rich.tree import Tree

STATUS_SYMBOLS = {
    "done": "[green]●[/green]",
    "pending": "[green dim]○[/green dim]",
    "running": "[cyan]○[/cyan]",
    "error": "[red]●[/red]",
    "skipped": "[yellow]○[/yellow]",
}


@dataclass
class Step:
    key: str
    label: str
    status: str = "pending"
    detail: str = ""

    def render_line(self) -> str:
        symbol = STATUS_SYMBOLS.get(self.status, " ")
        label = escape(self.label)
        detail = escape(self.detail.strip())
        if self.status == "pending":
            suffix = f" ({detail})" if detail else ""
            return f"{symbol} [bright_black]{label}{suffix}[/bright_black]"
        if detail:
            return f"{symbol} [white]{label}[/white] [bright_black]({detail})[/bright_black]"
        return f"{symbol} [white]{label}[/white]"


class StepTracker:
    """Ordered command steps, rendered as a rich tree.

    An attached refresh callback lets a ``Live`` display redraw on every
    status change; rendering problems never interrupt the command itself.
    """

    def __init__(self, title: str):
        self.title = title
        self._steps: dict[str, Step] = {}
        self._refresh_cb: Callable[[], None] | None = None

    @property
    def steps(self) -> list[Step]:
        return list(self._steps.values())

    def attach_refresh(self, cb: Callable[[], None]):
        self._refresh_cb = cb

    def add(self, key: str, label: str):
        self._steps.setdefault(key, Step(key, label))
        self._notify()

    def start(self, key: str, detail: str = ""):
        self._set(key, "running", detail)

    def complete(self, key: str, detail: str = ""):
        self._set(key, "done", detail)

    def error(self, key: str, detail: str = ""):
        self._set(key, "error", detail)

    def skip(self, key: str, detail: str = ""):
        self._set(key, "skipped", detail)

    def status(self, key: str) -> str | None:
        step = self._steps.get(key)
        return step.status if step else None

    @property
    def running(self) -> str | None:
        """Key of the step currently in progress, if any."""
        return next((s.key for s in self._steps.values() if s.status == "running"), None)

    def _set(self, key: str, status: str, detail: str):
        # Unknown keys are tracked under their own name.
        step = self._steps.setdefault(key, Step(key, key))
        step.status = status
        step.detail = detail or step.detail
        self._notify()

    def _notify(self):
        if self._refresh_cb is None:
            return
        try:
            self._refresh_cb()
        except Exception:
            pass

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self._steps.values():
            tree.add(step.render_line())
        return tree
