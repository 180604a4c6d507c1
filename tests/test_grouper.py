from unittest import TestCase

from curtaincore.common import DEFAULT_COLOR_LIST
from curtaincore.grouper import (
    condition_colors,
    group_samples_and_assign_colors,
    split_sample_name,
)
from curtaincore.models import Settings


class TestGrouper(TestCase):
    def test_split_sample_name(self):
        self.assertEqual(split_sample_name("Cond.A.1"), ("Cond.A", "1"))
        self.assertEqual(split_sample_name("Sample"), ("", "Sample"))

    def test_new_conditions(self):
        settings = group_samples_and_assign_colors(["A.1", "A.2", "B.1"], Settings())
        self.assertEqual(settings.condition_order, ["A", "B"])
        self.assertEqual(settings.sample_order, {"A": ["A.1", "A.2"], "B": ["B.1"]})
        self.assertEqual(settings.color_map, {"A": DEFAULT_COLOR_LIST[0], "B": DEFAULT_COLOR_LIST[1]})
        self.assertEqual(settings.sample_map["A.2"], {"condition": "A", "replicate": "2", "name": "A.2"})
        self.assertTrue(all(settings.sample_visible.values()))

    def test_merge_keeps_user_order(self):
        existing = Settings(
            condition_order=["B", "A"],
            color_map={"A": DEFAULT_COLOR_LIST[0], "B": DEFAULT_COLOR_LIST[1]},
        )
        settings = group_samples_and_assign_colors(["A.1", "B.1", "C.1"], existing)
        self.assertEqual(settings.condition_order, ["B", "A", "C"])
        self.assertEqual(settings.color_map["C"], DEFAULT_COLOR_LIST[2])

    def test_merge_appends_new_condition(self):
        existing = Settings(
            condition_order=["A", "B"],
            color_map={"A": DEFAULT_COLOR_LIST[0], "B": DEFAULT_COLOR_LIST[1]},
        )
        settings = group_samples_and_assign_colors(["A.1", "B.1", "C.1"], existing)
        self.assertEqual(settings.condition_order, ["A", "B", "C"])
        self.assertEqual(settings.color_map["C"], DEFAULT_COLOR_LIST[2])

    def test_stored_condition_overrides_name(self):
        existing = Settings(sample_map={"A.1": {"condition": "Control", "replicate": "1", "name": "A.1"}})
        settings = group_samples_and_assign_colors(["A.1", "Gone.1"], existing)
        self.assertEqual(settings.condition_order, ["Control", "Gone"])
        self.assertEqual(settings.sample_map["A.1"]["condition"], "Control")

    def test_dropped_samples_are_removed(self):
        existing = Settings(
            condition_order=["A", "Old"],
            sample_visible={"A.1": False, "Old.1": True},
            sample_order={"A": ["A.1"], "Old": ["Old.1"]},
        )
        settings = group_samples_and_assign_colors(["A.1"], existing)
        self.assertEqual(settings.condition_order, ["A"])
        self.assertEqual(settings.sample_visible, {"A.1": False})
        self.assertEqual(settings.sample_order, {"A": ["A.1"]})

    def test_sample_without_condition(self):
        settings = group_samples_and_assign_colors(["Sample"], Settings())
        self.assertEqual(settings.condition_order, [])
        self.assertEqual(settings.sample_map["Sample"]["condition"], "")

    def test_empty_palette(self):
        settings = group_samples_and_assign_colors(["A.1"], Settings(default_color_list=[]))
        self.assertEqual(settings.color_map, {})
        self.assertEqual(settings.condition_order, ["A"])

    def test_no_samples(self):
        existing = Settings(condition_order=["A"])
        self.assertIs(group_samples_and_assign_colors([], existing), existing)

    def test_condition_colors(self):
        settings = group_samples_and_assign_colors(["B.1", "A.1"], Settings())
        self.assertEqual(list(condition_colors(settings)), ["B", "A"])
