"""Select the version of a crate to acquire from a registry snapshot."""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import semantic_version

from common.logging_utils import extra_context, is_debug_enabled
from .models import PackageSpec, ResolutionResult, VersionConstraint, VersionRecord
from .parser import MATCH_ANY

logger = logging.getLogger(__name__)

Candidate = Tuple[semantic_version.Version, VersionRecord]


class CrateVersionResolver:
    """Resolver for crates using Cargo semver requirements and yank status."""

    def __init__(self, allow_yanked: bool = False):
        self.allow_yanked = allow_yanked

    @staticmethod
    def _parse_candidates(
        records: Iterable[VersionRecord], skipped: List[str]
    ) -> List[Candidate]:
        parsed = []
        for record in records:
            try:
                parsed.append((semantic_version.Version(record.version), record))
            except ValueError as exc:
                logger.warning("Ignoring non-semver version %s %s: %s", record.name, record.version, exc)
                skipped.append(record.version)
        return parsed

    @staticmethod
    def _matching(candidates: Iterable[Candidate], constraint: VersionConstraint) -> List[Candidate]:
        """Candidates satisfying ``constraint``, highest version first."""
        matching = [c for c in candidates if constraint.matches(c[0])]
        matching.sort(key=lambda c: c[0], reverse=True)
        return matching

    def pick(self, spec: PackageSpec, records: Optional[Sequence[VersionRecord]]) -> ResolutionResult:
        """Apply the spec's constraint to ``records`` and pick the highest match.

        Args:
            spec: Requested crate and optional constraint.
            records: Snapshot records for the crate, or None if it is unknown.

        Returns:
            ResolutionResult; never raises for "not found" or "no match".
        """
        if records is None:
            return ResolutionResult(spec=spec, found=False)

        constraint = spec.version_constraint or MATCH_ANY
        skipped: List[str] = []
        allowed = [r for r in records if self.allow_yanked or not r.yanked]
        candidates = self._parse_candidates(allowed, skipped)
        matching = self._matching(candidates, constraint)

        if is_debug_enabled(logger):
            logger.debug(
                "Version candidates",
                extra=extra_context(
                    event="resolve",
                    component="resolver",
                    target=str(spec),
                    available=[r.version for r in records],
                    matching=[str(v) for v, _ in matching],
                ),
            )

        if matching:
            version, record = matching[0]
            return ResolutionResult(
                spec=spec,
                record=record,
                version=version,
                candidate_count=len(candidates),
                skipped_versions=skipped,
            )

        yanked = self._parse_candidates((r for r in records if r.yanked), [])
        yanked_matching = self._matching(yanked, constraint)
        hint = yanked_matching[0][1] if yanked_matching else None
        return ResolutionResult(
            spec=spec,
            yanked_hint=hint,
            candidate_count=len(candidates),
            skipped_versions=skipped,
        )
