import sys
from pathlib import Path
import random
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from lorequest.application.services.balance_tables import BASE_ENEMIES
from lorequest.application.services.encounter_service import generate_enemy, should_trigger_encounter


class _FixedRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def _base(name: str) -> dict:
    return next(row for row in BASE_ENEMIES if row["name"] == name)


class EncounterServiceTests(unittest.TestCase):
    def test_level_one_enemy_uses_minimum_scaling(self) -> None:
        enemy = generate_enemy(1, random.Random(7))
        base = _base(enemy.name)

        self.assertEqual(1, enemy.level)
        self.assertEqual(int(base["base_health"] + 4), enemy.max_health)
        self.assertEqual(enemy.max_health, enemy.current_health)
        self.assertEqual(base["base_attack"], enemy.attack)
        self.assertEqual(base["base_xp"] + 2, enemy.xp_reward)
        self.assertEqual(base["base_gold"] + 1, enemy.gold_reward)

    def test_enemy_scales_with_level(self) -> None:
        enemy = generate_enemy(10, random.Random(3))
        base = _base(enemy.name)

        self.assertEqual(base["base_health"] + 36, enemy.max_health)
        self.assertEqual(base["base_attack"] + 7, enemy.attack)
        self.assertEqual(base["base_xp"] + 20, enemy.xp_reward)

    def test_same_seed_same_enemy(self) -> None:
        self.assertEqual(generate_enemy(4, random.Random(11)), generate_enemy(4, random.Random(11)))

    def test_encounter_trigger(self) -> None:
        self.assertFalse(should_trigger_encounter(0, _FixedRandom(0.0)))
        self.assertTrue(should_trigger_encounter(500, _FixedRandom(0.05)))
        self.assertFalse(should_trigger_encounter(500, _FixedRandom(0.5)))


if __name__ == "__main__":
    unittest.main()
