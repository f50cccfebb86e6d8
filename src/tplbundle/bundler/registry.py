"""Classification of template sources into single outputs and bundle members."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from tplbundle.bundler.models import Bundle
from tplbundle.config import BundleSpec, parse_bundles, parse_singles
from tplbundle.matching import PatternMatcher, build_matcher


class ClassificationRegistry:
    """Single-output rules and bundle definitions, fixed after construction."""

    def __init__(
        self,
        singles: Sequence[object] = (),
        bundles: Sequence[BundleSpec] = (),
    ) -> None:
        self._single_matchers: tuple[PatternMatcher, ...] = tuple(
            build_matcher(pattern, f"singles[{index}]") for index, pattern in enumerate(singles)
        )
        self._bundles: tuple[Bundle, ...] = tuple(
            Bundle(
                target_path=spec.target_path,
                module=spec.module,
                matcher=build_matcher(spec.pattern, f"bundles.{spec.target_path}.pattern"),
            )
            for spec in bundles
        )

    @classmethod
    def from_config(
        cls, singles: object = None, bundles: object = None
    ) -> ClassificationRegistry:
        """Validate raw singles/bundles settings and build a registry from them."""
        return cls(parse_singles(singles), parse_bundles(bundles))

    def is_single(self, path: str) -> bool:
        return any(matcher.matches(path) for matcher in self._single_matchers)

    def belongs_to_bundle(self, path: str) -> bool:
        return any(bundle.matches(path) for bundle in self._bundles)

    def bundle_for(self, path: str) -> Bundle | None:
        """Return the first bundle whose pattern matches, ignoring later ones.

        Used for reporting only. Rewrites go through ``bundles_containing``.
        """
        for bundle in self._bundles:
            if bundle.matches(path):
                return bundle
        return None

    def bundles_containing(self, paths: Iterable[str]) -> tuple[Bundle, ...]:
        """Every bundle, in definition order, matched by at least one of the paths."""
        candidates = tuple(paths)
        if not candidates:
            return ()
        return tuple(
            bundle
            for bundle in self._bundles
            if any(bundle.matches(path) for path in candidates)
        )

    def all_bundles(self) -> tuple[Bundle, ...]:
        return self._bundles

    def is_overlapping(self, path: str) -> bool:
        """True when a path is both a single output and a bundle member."""
        return self.is_single(path) and self.belongs_to_bundle(path)
