"""Built-in ability catalogue and job/role data."""

from dataclasses import dataclass

from mitplan.cooldown.models import AbilityDefinition, ActiveWindowRequirement


@dataclass(frozen=True)
class JobSpec:
    job_id: str
    name: str
    role: str  # "tank", "healer", "melee", "ranged", "caster"


JOBS: tuple[JobSpec, ...] = (
    JobSpec("PLD", "Paladin", "tank"),
    JobSpec("WAR", "Warrior", "tank"),
    JobSpec("DRK", "Dark Knight", "tank"),
    JobSpec("GNB", "Gunbreaker", "tank"),
    JobSpec("WHM", "White Mage", "healer"),
    JobSpec("SCH", "Scholar", "healer"),
    JobSpec("AST", "Astrologian", "healer"),
    JobSpec("SGE", "Sage", "healer"),
    JobSpec("MNK", "Monk", "melee"),
    JobSpec("DRG", "Dragoon", "melee"),
    JobSpec("NIN", "Ninja", "melee"),
    JobSpec("SAM", "Samurai", "melee"),
    JobSpec("RPR", "Reaper", "melee"),
    JobSpec("VPR", "Viper", "melee"),
    JobSpec("BRD", "Bard", "ranged"),
    JobSpec("MCH", "Machinist", "ranged"),
    JobSpec("DNC", "Dancer", "ranged"),
    JobSpec("BLM", "Black Mage", "caster"),
    JobSpec("SMN", "Summoner", "caster"),
    JobSpec("RDM", "Red Mage", "caster"),
    JobSpec("PCT", "Pictomancer", "caster"),
)

JOBS_BY_ROLE: dict[str, tuple[str, ...]] = {
    role: tuple(j.job_id for j in JOBS if j.role == role)
    for role in ("tank", "healer", "melee", "ranged", "caster")
}

# Cooldowns and durations in seconds; level overrides keyed by the level at
# which the value takes effect.
DEFAULT_ABILITIES: tuple[AbilityDefinition, ...] = (
    # Tank role
    AbilityDefinition(
        id="reprisal", name="Reprisal", base_cooldown=60, duration=10,
        level_duration_overrides={98: 15}, level_requirement=22,
        is_role_shared=True, eligible_jobs=JOBS_BY_ROLE["tank"],
        target="area", for_tank_busters=True, for_raid_wide=True,
    ),
    AbilityDefinition(
        id="rampart", name="Rampart", base_cooldown=90, duration=20,
        level_requirement=8, eligible_jobs=JOBS_BY_ROLE["tank"],
        target="self", for_tank_busters=True,
    ),
    # Warrior
    AbilityDefinition(
        id="bloodwhetting", name="Bloodwhetting", base_cooldown=25, duration=8,
        level_requirement=82, eligible_jobs=("WAR",), target="self",
        for_tank_busters=True, shared_cooldown_group="war_bloodwhetting_nascent",
    ),
    AbilityDefinition(
        id="nascent_flash", name="Nascent Flash", base_cooldown=25, duration=8,
        level_requirement=76, eligible_jobs=("WAR",), target="single",
        for_tank_busters=True, shared_cooldown_group="war_bloodwhetting_nascent",
    ),
    # Paladin
    AbilityDefinition(
        id="intervention", name="Intervention", base_cooldown=10, duration=8,
        level_requirement=62, eligible_jobs=("PLD",), target="single",
        for_tank_busters=True,
    ),
    # Gunbreaker
    AbilityDefinition(
        id="heart_of_corundum", name="Heart of Corundum", base_cooldown=25,
        duration=8, level_requirement=82, eligible_jobs=("GNB",),
        target="single", for_tank_busters=True,
    ),
    # Dark Knight
    AbilityDefinition(
        id="oblation", name="Oblation", base_cooldown=60, duration=10,
        charge_count=2, level_requirement=82, eligible_jobs=("DRK",),
        target="single", for_tank_busters=True,
    ),
    # White Mage
    AbilityDefinition(
        id="divine_benison", name="Divine Benison", base_cooldown=30,
        duration=15, charge_count=2, level_requirement=66,
        eligible_jobs=("WHM",), target="single", for_tank_busters=True,
    ),
    AbilityDefinition(
        id="temperance", name="Temperance", base_cooldown=120, duration=20,
        level_requirement=80, eligible_jobs=("WHM",), target="party",
        for_raid_wide=True,
    ),
    AbilityDefinition(
        id="divine_caress", name="Divine Caress", base_cooldown=1, duration=10,
        level_requirement=100, eligible_jobs=("WHM",), target="party",
        for_raid_wide=True,
        requires_active_window_of=ActiveWindowRequirement(
            ability_id="temperance", duration=30,
        ),
    ),
    # Scholar
    AbilityDefinition(
        id="aetherflow", name="Aetherflow", base_cooldown=60,
        level_requirement=45, eligible_jobs=("SCH",), target="self",
        provides_stack_resource=True,
    ),
    AbilityDefinition(
        id="lustrate", name="Lustrate", base_cooldown=1, level_requirement=45,
        eligible_jobs=("SCH",), target="single", for_tank_busters=True,
        consumes_stack_resource=True,
    ),
    AbilityDefinition(
        id="sacred_soil", name="Sacred Soil", base_cooldown=30, duration=15,
        level_requirement=50, eligible_jobs=("SCH",), target="area",
        for_raid_wide=True, consumes_stack_resource=True,
    ),
    AbilityDefinition(
        id="excogitation", name="Excogitation", base_cooldown=45,
        duration=45, level_requirement=62, eligible_jobs=("SCH",),
        target="single", for_tank_busters=True, consumes_stack_resource=True,
    ),
    AbilityDefinition(
        id="indomitability", name="Indomitability", base_cooldown=30,
        level_requirement=52, eligible_jobs=("SCH",), target="party",
        for_raid_wide=True, consumes_stack_resource=True,
    ),
    AbilityDefinition(
        id="summon_seraph", name="Summon Seraph", base_cooldown=120,
        duration=22, level_requirement=80, eligible_jobs=("SCH",),
        target="party", for_raid_wide=True,
    ),
    AbilityDefinition(
        id="consolation", name="Consolation", base_cooldown=30, duration=30,
        charge_count=2, level_requirement=80, eligible_jobs=("SCH",),
        target="party", for_raid_wide=True,
        requires_active_window_of=ActiveWindowRequirement(
            ability_id="summon_seraph",
        ),
    ),
    # Sage
    AbilityDefinition(
        id="kerachole", name="Kerachole", base_cooldown=30, duration=15,
        level_requirement=50, eligible_jobs=("SGE",), target="area",
        for_raid_wide=True,
    ),
    # Melee / caster / ranged role
    AbilityDefinition(
        id="feint", name="Feint", base_cooldown=90, duration=10,
        level_duration_overrides={98: 15}, level_requirement=22,
        is_role_shared=True, eligible_jobs=JOBS_BY_ROLE["melee"],
        target="area", for_tank_busters=True, for_raid_wide=True,
    ),
    AbilityDefinition(
        id="addle", name="Addle", base_cooldown=90, duration=10,
        level_duration_overrides={98: 15}, level_requirement=8,
        is_role_shared=True, eligible_jobs=JOBS_BY_ROLE["caster"],
        target="area", for_tank_busters=True, for_raid_wide=True,
    ),
    AbilityDefinition(
        id="ranged_party_mitigation",
        name="Troubadour / Tactician / Shield Samba",
        base_cooldown=120, duration=15,
        level_cooldown_overrides={88: 90}, level_requirement=62,
        is_role_shared=True, eligible_jobs=("BRD", "MCH", "DNC"),
        target="party", for_raid_wide=True,
    ),
)
