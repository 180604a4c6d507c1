from unittest import TestCase

from curtaincore.colors import ColorCache, assign_colors


class TestAssignColors(TestCase):
    def test_unused_colors_first(self):
        colors = assign_colors(["new"], {"old": "a"}, ["a", "b", "c"])
        self.assertEqual(colors, {"old": "a", "new": "b"})

    def test_existing_colors_are_kept(self):
        colors = assign_colors(["old", "new"], {"old": "c"}, ["a", "b", "c"])
        self.assertEqual(colors["old"], "c")
        self.assertEqual(colors["new"], "a")

    def test_reuse_after_exhaustion(self):
        colors = assign_colors(["x", "y", "z", "w"], {}, ["a", "b"])
        self.assertEqual(colors, {"x": "a", "y": "b", "z": "a", "w": "b"})

    def test_input_not_modified(self):
        existing = {"old": "a"}
        assign_colors(["new"], existing, ["a", "b"])
        self.assertEqual(existing, {"old": "a"})

    def test_empty_palette(self):
        self.assertEqual(assign_colors(["x"], {}, []), {})


class TestColorCache(TestCase):
    def test_assign_and_update(self):
        cache = ColorCache()
        cache.assign(["x"], ["a", "b"])
        cache.update({"y": "b"})
        self.assertEqual(cache.assign(["x", "y", "z"], ["a", "b", "c"]), {"x": "a", "y": "b", "z": "c"})
        self.assertIn("z", cache)
        self.assertEqual(len(cache), 3)
        cache.clear()
        self.assertIsNone(cache.get("x"))
