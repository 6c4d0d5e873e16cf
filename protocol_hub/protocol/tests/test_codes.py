from __future__ import annotations

from django.test import SimpleTestCase

from protocol.services import codes


class SplitEmblemCodeTests(SimpleTestCase):
    def test_dashed_code_splits_on_dash(self) -> None:
        self.assertEqual(codes.split_emblem_code("ABC-DEF-GHI"), ["ABC", "DEF", "GHI"])

    def test_dash_free_code_is_chunked_by_three(self) -> None:
        self.assertEqual(codes.split_emblem_code("NXS7QKR4D"), ["NXS", "7QK", "R4D"])
        self.assertEqual(codes.split_emblem_code("ABCDEFGHIJKL"), ["ABC", "DEF", "GHI", "JKL"])

    def test_blank_code_gives_no_groups(self) -> None:
        self.assertEqual(codes.split_emblem_code("   "), [])
        self.assertEqual(codes.split_emblem_code(None), [])

    def test_format_follows_group_count(self) -> None:
        self.assertEqual(codes.code_format(["ABC", "DEF", "GHI"]), "AAA-BBB-CCC")
        self.assertEqual(codes.code_format(["ABC", "DEF", "GHI", "JKL"]), "AAA-BBB-CCC-DDD")


class GeneratePatternTests(SimpleTestCase):
    def test_sections_are_keyed_by_letter_and_position(self) -> None:
        pattern = codes.generate_pattern(["ABC", "DEF", "GHI"])
        self.assertEqual(
            pattern,
            {
                "AAA": {"A1": "A", "A2": "B", "A3": "C"},
                "BBB": {"B1": "D", "B2": "E", "B3": "F"},
                "CCC": {"C1": "G", "C2": "H", "C3": "I"},
            },
        )

    def test_groups_of_wrong_length_are_skipped(self) -> None:
        pattern = codes.generate_pattern(["ABC", "DE", "GHI"])
        self.assertEqual(sorted(pattern), ["AAA", "CCC"])
        self.assertEqual(codes.count_fragments(pattern), 6)

    def test_collected_count_ignores_keys_outside_the_pattern(self) -> None:
        pattern = codes.generate_pattern(["ABC", "DEF", "GHI"])
        self.assertEqual(codes.count_collected(pattern, ["A1", "B2", "D1", "Z9", "A1"]), 2)
        self.assertEqual(codes.count_collected({}, ["A1"]), 0)

    def test_groups_past_the_fourth_are_ignored(self) -> None:
        pattern = codes.generate_pattern(["ABC", "DEF", "GHI", "JKL", "MNO"])
        self.assertEqual(sorted(pattern), ["AAA", "BBB", "CCC", "DDD"])
        self.assertEqual(pattern["DDD"], {"D1": "J", "D2": "K", "D3": "L"})


class RevealProgressTests(SimpleTestCase):
    target = ["ABC", "DEF", "GHI"]

    def setUp(self) -> None:
        self.pattern = codes.generate_pattern(self.target)

    def test_partial_reveal_masks_missing_fragments(self) -> None:
        result = codes.reveal_progress(self.pattern, self.target, ["A1"])
        self.assertEqual(result["display_code"], "A-?-? | ?-?-? | ?-?-?")
        self.assertEqual(result["collected"], 1)
        self.assertEqual(result["total"], 9)
        self.assertEqual(result["progress"], 11)
        self.assertFalse(result["can_claim"])
        self.assertNotIn("full_code", result)
        self.assertEqual(result["pattern"]["AAA"], {"A1": "A", "A2": "?", "A3": "?"})

    def test_full_reveal_allows_claim(self) -> None:
        every_key = [key for section in self.pattern.values() for key in section]
        result = codes.reveal_progress(self.pattern, self.target, every_key)
        self.assertEqual(result["display_code"], "A-B-C | D-E-F | G-H-I")
        self.assertEqual(result["full_code"], "ABC-DEF-GHI")
        self.assertEqual(result["collected"], result["total"])
        self.assertEqual(result["progress"], 100)
        self.assertTrue(result["can_claim"])
        self.assertEqual(result["format"], "AAA-BBB-CCC")

    def test_unknown_fragment_keys_are_not_counted(self) -> None:
        result = codes.reveal_progress(self.pattern, self.target, ["A1", "Z9", "A1"])
        self.assertEqual(result["collected"], 1)

    def test_empty_pattern_reports_zero(self) -> None:
        result = codes.reveal_progress({}, [], [])
        self.assertEqual(result["display_code"], "")
        self.assertEqual(result["progress"], 0)
        self.assertFalse(result["can_claim"])

    def test_percent_rounds_halves_up(self) -> None:
        self.assertEqual(codes.completion_percent(1, 8), 13)
        self.assertEqual(codes.completion_percent(2, 3), 67)
        self.assertEqual(codes.completion_percent(1, 9), 11)
        self.assertEqual(codes.completion_percent(3, 0), 0)
