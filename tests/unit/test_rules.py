"""
Unit tests for the heuristic rule tables, independent of any detector.
"""
import re

from storefront_radar.catalog.classifiers.rules import Rule, RuleTable, word


def test_phrase_and_regex_rules():
    phrase = Rule("printful", 0.8, "pod_app")
    regex = Rule(re.compile(r"aw-\d+"), 1.0, "google")
    assert phrase.matches("<script src='printful.js'>")
    assert not phrase.matches("printify")
    assert regex.matches("gtag('config', 'aw-123456')")
    assert regex.label == r"aw-\d+"


def test_first_match_respects_table_order():
    table = RuleTable.from_phrases("x", ["beta", "alpha"], weight=0.1)
    assert table.first_match("alpha beta").label == "beta"
    assert table.first_match("gamma") is None


def test_score_stops_at_max_hits():
    table = RuleTable.from_phrases("kw", ["a1", "a2", "a3"], weight=0.2)
    result = table.score("a1 a2 a3", max_hits=2)
    assert result.score == 0.4
    assert [r.label for r in result.hits] == ["a1", "a2"]
    assert result.signals == ["kw:a1", "kw:a2"]


def test_score_is_capped():
    table = RuleTable.from_phrases("brand", ["one", "two", "three", "four", "five"], weight=0.15)
    result = table.score("one two three four five", cap=0.4)
    assert result.score == 0.4
    assert len(result.hits) == 3


def test_matching_lists_every_hit():
    table = RuleTable.from_phrases("x", ["a", "b", "c"], weight=1.0)
    assert [r.label for r in table.matching("c a")] == ["a", "c"]
    assert len(table) == 3


def test_word_pattern_is_whole_word():
    pattern = word("usa")
    assert pattern.search("ships from usa today")
    assert not pattern.search("jerusalem")
    assert not pattern.search("causal")
