"""Final run report."""

from __future__ import annotations

from dataclasses import dataclass, field

from soresolve.exceptions import AmbiguousSelectionDeclined, UnresolvedDependency
from soresolve.models.resolution import Resolution, ResolutionStatus, RuntimeEnvironment


@dataclass
class ResolutionReport:
    """Everything a caller needs to tell the user what happened to each soname."""

    binary: str
    resolutions: list[Resolution] = field(default_factory=list)
    environment: RuntimeEnvironment | None = None
    wrapper_path: str | None = None
    mode: str = "ld-path"
    packages: list[str] = field(default_factory=list)

    @property
    def unresolved(self) -> list[str]:
        return [r.soname for r in self.resolutions if not r.resolved]

    @property
    def declined(self) -> list[str]:
        return [r.soname for r in self.resolutions if r.status is ResolutionStatus.DECLINED]

    @property
    def complete(self) -> bool:
        return not self.unresolved

    def raise_for_unresolved(self) -> None:
        missing = self.unresolved
        if not missing:
            return
        if missing == self.declined:
            raise AmbiguousSelectionDeclined(missing)
        raise UnresolvedDependency(missing)
