"""
Built-in card library - The standard sci-fi set.

Every spell and ability is expressed in the effect DSL. The set doubles as
the catalog used by the CLI simulation and the default API repository.
"""

from __future__ import annotations

from .cards import (
    AttackTargeting,
    CardDefinition,
    CardKind,
    DeckEntry,
    DeckList,
    TriggerEvent,
    TriggeredAbility,
)
from .effect_dsl import (
    Effect,
    TargetSelector,
    TargetType,
    conditional_step,
    deal_damage_step,
    destroy_step,
    draw_card_step,
    for_each_step,
    gain_energy_step,
    heal_step,
    log_step,
    select_targets_step,
)


def _creature(card_id, name, cost, attack, health, description="", **kwargs) -> CardDefinition:
    return CardDefinition(
        card_id=card_id,
        name=name,
        kind=CardKind.CREATURE,
        cost=cost,
        attack=attack,
        health=health,
        description=description,
        **kwargs,
    )


def _artifact(card_id, name, cost, description="", health=None, **kwargs) -> CardDefinition:
    return CardDefinition(
        card_id=card_id,
        name=name,
        kind=CardKind.ARTIFACT,
        cost=cost,
        health=health,
        description=description,
        **kwargs,
    )


def _spell(card_id, name, cost, description, effect: Effect) -> CardDefinition:
    return CardDefinition(
        card_id=card_id,
        name=name,
        kind=CardKind.SPELL,
        cost=cost,
        description=description,
        spell_effect=effect,
    )


def _targeted_damage(effect_id: str, name: str, amount: int) -> Effect:
    return Effect(
        effect_id=effect_id,
        name=name,
        description=f"Deal {amount} damage to any target.",
        steps=[
            select_targets_step(
                "choose",
                TargetSelector(
                    target_type=TargetType.ANY,
                    can_target_self=False,
                    description=f"Choose a target for {name}",
                ),
            ),
            deal_damage_step("hit", "$targets", amount),
            log_step("announce", f"{name} deals {amount} damage"),
        ],
    )


def build_standard_library() -> list[CardDefinition]:
    """Create the built-in card set."""
    return [
        _creature("card_001", "Cyber Drone", 2, 2, 1, "A fast reconnaissance unit."),
        _spell(
            "card_002", "Plasma Burst", 3,
            "Deal 3 energy damage to any target.",
            _targeted_damage("plasma_burst", "Plasma Burst", 3),
        ),
        _creature(
            "card_003", "Steel Sentinel", 4, 2, 6,
            "An automated defense unit. Cannot attack players.",
            attack_targeting=AttackTargeting(
                can_target_players=False,
                description="Steel Sentinel only engages units",
            ),
        ),
        _artifact(
            "card_004", "Nano Enhancer", 2,
            "At the start of your turn, repair 1 health on each of your creatures.",
            triggered_abilities=(
                TriggeredAbility(
                    trigger=TriggerEvent.START_TURN,
                    description="Nanites repair your creatures",
                    effect=Effect(
                        effect_id="nano_enhancer",
                        name="Nano Enhancer",
                        steps=[heal_step("repair", "own_creatures", 1)],
                    ),
                ),
            ),
        ),
        _creature("card_005", "Quantum Destroyer", 5, 4, 3, "A cybernetic war machine from the future."),
        _spell(
            "card_006", "Data Spike", 1,
            "Hack enemy systems for 1 damage.",
            Effect(
                effect_id="data_spike",
                name="Data Spike",
                steps=[deal_damage_step("hack", "opponents", 1)],
            ),
        ),
        _creature(
            "card_007", "Bio-Mech Guardian", 6, 5, 5,
            "At the end of your turn, restore 1 health to all allied creatures.",
            triggered_abilities=(
                TriggeredAbility(
                    trigger=TriggerEvent.END_TURN,
                    description="Guardian protocol restores allies",
                    effect=Effect(
                        effect_id="guardian_protocol",
                        name="Bio-Mech Guardian",
                        steps=[heal_step("restore", "own_creatures", 1)],
                    ),
                ),
            ),
        ),
        _creature("card_008", "Energy Shield", 3, 1, 4, "Deflects incoming attacks."),
        _artifact(
            "card_009", "Neural Interface", 1,
            "Draw an additional card each turn.",
            triggered_abilities=(
                TriggeredAbility(
                    trigger=TriggerEvent.START_TURN,
                    description="Draw an additional card",
                    effect=Effect(
                        effect_id="neural_interface",
                        name="Neural Interface",
                        steps=[draw_card_step("draw", 1)],
                    ),
                ),
            ),
        ),
        _artifact(
            "card_010", "Fusion Core", 4,
            "Gain +1 energy per turn.",
            triggered_abilities=(
                TriggeredAbility(
                    trigger=TriggerEvent.START_TURN,
                    description="Gain 1 energy",
                    effect=Effect(
                        effect_id="fusion_core",
                        name="Fusion Core",
                        steps=[gain_energy_step("charge", 1)],
                    ),
                ),
            ),
        ),
        _creature("card_011", "Assault Bot", 3, 3, 2, "Fast attack unit."),
        _spell(
            "card_012", "System Crash", 4,
            "Destroy target enemy artifact.",
            Effect(
                effect_id="system_crash",
                name="System Crash",
                steps=[
                    select_targets_step(
                        "choose",
                        TargetSelector(
                            target_type=TargetType.ARTIFACT,
                            can_target_self=False,
                            description="Choose an artifact to crash",
                            auto_target=True,
                        ),
                    ),
                    destroy_step("crash", "$targets"),
                ],
            ),
        ),
        _creature(
            "card_013", "Repair Drone", 2, 1, 3,
            "At the end of your turn, restore 2 health to each of your creatures.",
            triggered_abilities=(
                TriggeredAbility(
                    trigger=TriggerEvent.END_TURN,
                    description="Repair allied creatures",
                    effect=Effect(
                        effect_id="repair_drone",
                        name="Repair Drone",
                        steps=[heal_step("repair", "own_creatures", 2)],
                    ),
                ),
            ),
        ),
        _spell(
            "card_014", "Photon Cannon", 5,
            "Deal 5 damage to target.",
            _targeted_damage("photon_cannon", "Photon Cannon", 5),
        ),
        _creature(
            "card_015", "Stealth Infiltrator", 2, 1, 1,
            "Cannot be blocked. Only attacks players.",
            attack_targeting=AttackTargeting(
                can_target_creatures=False,
                can_target_artifacts=False,
                description="Stealth Infiltrator slips past defenders",
            ),
        ),
        _spell(
            "card_016", "Chain Lightning", 4,
            "Deal 2 damage to every enemy creature and 1 damage to each opponent.",
            Effect(
                effect_id="chain_lightning",
                name="Chain Lightning",
                steps=[
                    for_each_step(
                        "arc",
                        "creature",
                        "enemy_creatures",
                        [deal_damage_step("arc_hit", "$creature", 2)],
                    ),
                    deal_damage_step("ground", "opponents", 1),
                    log_step("announce", "Lightning arcs across the battlefield"),
                ],
            ),
        ),
        _artifact(
            "card_017", "Volatile Core", 2,
            "When this takes damage, it deals 2 damage to each opponent.",
            health=2,
            triggered_abilities=(
                TriggeredAbility(
                    trigger=TriggerEvent.TAKE_DAMAGE,
                    description="Core overload",
                    effect=Effect(
                        effect_id="volatile_core",
                        name="Volatile Core",
                        steps=[deal_damage_step("overload", "opponents", 2)],
                    ),
                ),
            ),
        ),
        _creature(
            "card_018", "Retaliator", 3, 2, 3,
            "When this takes damage, it deals 1 damage to each opponent.",
            triggered_abilities=(
                TriggeredAbility(
                    trigger=TriggerEvent.TAKE_DAMAGE,
                    description="Retaliation strike",
                    effect=Effect(
                        effect_id="retaliator",
                        name="Retaliator",
                        steps=[deal_damage_step("strike", "opponents", 1)],
                    ),
                ),
            ),
        ),
        _creature(
            "card_019", "Siphon Drone", 2, 1, 2,
            "Whenever this deals damage, you gain that much health.",
            triggered_abilities=(
                TriggeredAbility(
                    trigger=TriggerEvent.DEAL_DAMAGE,
                    description="Siphon life",
                    effect=Effect(
                        effect_id="siphon_drone",
                        name="Siphon Drone",
                        steps=[heal_step("siphon", "self", "context.damage_amount")],
                    ),
                ),
            ),
        ),
        _spell(
            "card_020", "Overload", 2,
            "Deal 4 damage to each opponent if your health is below 10, otherwise 2.",
            Effect(
                effect_id="overload",
                name="Overload",
                steps=[
                    conditional_step(
                        "desperate",
                        "caster.health < 10",
                        then_steps=[deal_damage_step("surge", "opponents", 4)],
                        else_steps=[deal_damage_step("spark", "opponents", 2)],
                    ),
                ],
            ),
        ),
    ]


STANDARD_DECK_COPIES = {
    "card_001": 3,  # Cyber Drone
    "card_002": 2,  # Plasma Burst
    "card_003": 2,  # Steel Sentinel
    "card_004": 3,  # Nano Enhancer
    "card_005": 1,  # Quantum Destroyer (rare)
    "card_006": 4,  # Data Spike (common)
    "card_007": 1,  # Bio-Mech Guardian (rare)
    "card_008": 3,  # Energy Shield
    "card_009": 2,  # Neural Interface
    "card_010": 2,  # Fusion Core
    "card_011": 3,  # Assault Bot
    "card_012": 2,  # System Crash
    "card_013": 3,  # Repair Drone
    "card_014": 1,  # Photon Cannon (rare)
    "card_015": 3,  # Stealth Infiltrator
    "card_016": 1,
    "card_017": 2,
    "card_018": 2,
    "card_019": 2,
    "card_020": 1,
}


def standard_deck(deck_id: str = "standard") -> DeckList:
    """Create the standard deck list for the built-in set."""
    return DeckList(
        deck_id=deck_id,
        name="Standard Deck",
        entries=[
            DeckEntry(card_id=card_id, quantity=quantity)
            for card_id, quantity in STANDARD_DECK_COPIES.items()
        ],
    )
