"""Feature-to-segment resolution."""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from pumpkinctl.core.errors import FeatureNotFoundError
from pumpkinctl.core.model import Feature, SegmentAddress


class FeatureRegistry:
    """Read-only view over the installation's features.

    Controller references are not checked here; the dispatcher does that when it
    groups targets, so one bad reference does not hide the rest of the registry.
    """

    def __init__(self, features: Mapping[str, Feature]) -> None:
        self._features = dict(features)

    def __contains__(self, feature_key: object) -> bool:
        return feature_key in self._features

    def __iter__(self) -> Iterator[str]:
        return iter(self._features)

    def __len__(self) -> int:
        return len(self._features)

    def get(self, feature_key: str) -> Feature:
        feature = self._features.get(feature_key)
        if feature is None:
            raise FeatureNotFoundError(feature_key)
        return feature

    def list_features(self) -> list[Feature]:
        return list(self._features.values())

    def resolve(self, feature_key: str) -> tuple[SegmentAddress, ...]:
        feature = self.get(feature_key)
        if feature.multi_segment:
            return tuple(feature.targets)
        return (feature.targets[0],)
