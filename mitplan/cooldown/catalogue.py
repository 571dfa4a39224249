"""Read-only ability registry with level-scaled lookups."""

import json
import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, TypeVar

from mitplan.cooldown.models import AbilityDefinition

logger = logging.getLogger(__name__)

V = TypeVar("V")


def _value_for_level(
    overrides: dict[int, V], level: int | None, default: V,
) -> V:
    """Pick the override with the highest level <= ``level``."""
    if not overrides or level is None:
        return default
    eligible = [lvl for lvl in overrides if lvl <= level]
    if not eligible:
        return default
    return overrides[max(eligible)]


def cooldown_for_level(ability: AbilityDefinition, level: int | None) -> float:
    return _value_for_level(
        ability.level_cooldown_overrides, level, ability.base_cooldown,
    )


def duration_for_level(ability: AbilityDefinition, level: int | None) -> float:
    return _value_for_level(
        ability.level_duration_overrides, level, ability.duration,
    )


def charges_for_level(ability: AbilityDefinition, level: int | None) -> int:
    return _value_for_level(
        ability.level_charge_overrides, level, ability.charge_count,
    )


class AbilityCatalogue:
    """Indexes ability definitions by id, shared-cooldown group and stack role."""

    def __init__(self, abilities: Iterable[AbilityDefinition]) -> None:
        self._abilities: dict[str, AbilityDefinition] = {}
        self._groups: dict[str, list[AbilityDefinition]] = defaultdict(list)
        for ability in abilities:
            if ability.id in self._abilities:
                raise ValueError(f"Duplicate ability id in catalogue: {ability.id}")
            self._abilities[ability.id] = ability
            if ability.shared_cooldown_group:
                self._groups[ability.shared_cooldown_group].append(ability)

        self.stack_consumers: tuple[AbilityDefinition, ...] = tuple(
            a for a in self._abilities.values() if a.consumes_stack_resource
        )
        providers = [
            a for a in self._abilities.values() if a.provides_stack_resource
        ]
        if len(providers) > 1:
            logger.warning(
                "Catalogue defines %d stack providers, using %s",
                len(providers), providers[0].id,
            )
        self.stack_provider: AbilityDefinition | None = (
            providers[0] if providers else None
        )

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "AbilityCatalogue":
        return cls(AbilityDefinition.model_validate(r) for r in records)

    @classmethod
    def from_file(cls, path: str | Path) -> "AbilityCatalogue":
        """Load a JSON list of ability records (camelCase or snake_case keys)."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            raw = raw.get("abilities", [])
        catalogue = cls.from_records(raw)
        logger.info("Loaded %d abilities from %s", len(catalogue), path)
        return catalogue

    def get(self, ability_id: str) -> AbilityDefinition | None:
        return self._abilities.get(ability_id)

    def group_members(self, group: str) -> list[AbilityDefinition]:
        return list(self._groups.get(group, []))

    def stack_provider_jobs(self) -> tuple[str, ...]:
        """Jobs whose presence enables the stack resource."""
        if self.stack_provider is not None:
            return self.stack_provider.eligible_jobs
        jobs: dict[str, None] = {}
        for consumer in self.stack_consumers:
            jobs.update(dict.fromkeys(consumer.eligible_jobs))
        return tuple(jobs)

    def __contains__(self, ability_id: object) -> bool:
        return ability_id in self._abilities

    def __iter__(self) -> Iterator[AbilityDefinition]:
        return iter(self._abilities.values())

    def __len__(self) -> int:
        return len(self._abilities)


def load_catalogue(path: str = "") -> AbilityCatalogue:
    """Return the catalogue at ``path``, or the built-in one when empty."""
    if path:
        return AbilityCatalogue.from_file(path)
    from mitplan.cooldown.constants import DEFAULT_ABILITIES

    return AbilityCatalogue(DEFAULT_ABILITIES)
