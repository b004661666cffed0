import json
from types import MappingProxyType

from rules import DEFAULT_VIBE_CATS, VibeTimeRuleEngine, load_rule_table


def _engine(table):
    return VibeTimeRuleEngine(MappingProxyType(table))


def test_falls_back_to_any_bucket():
    engine = _engine({"arcade": {"any": ["arcade", "board_games"], "morning": ["cafe"]}})
    assert engine.resolve(["arcade"], "evening") == ["arcade", "board_games"]


def test_prefers_exact_time_bucket():
    engine = _engine({"arcade": {"any": ["arcade"], "morning": ["cafe"]}})
    assert engine.resolve(["arcade"], "morning") == ["cafe"]


def test_explicit_empty_bucket_is_respected():
    engine = _engine({"arcade": {"any": ["arcade"], "night": []}})
    assert engine.resolve(["arcade"], "night") == []


def test_unruled_vibe_uses_defaults():
    engine = _engine({})
    assert engine.resolve(["romantic"], "night") == list(DEFAULT_VIBE_CATS["romantic"])


def test_alias_expansion_only_when_requested():
    engine = _engine({"boba stop": {"afternoon": ["bubble_tea"]}})
    assert engine.resolve(["boba stop"], "afternoon") == ["bubble_tea"]
    assert engine.resolve(["boba stop"], "afternoon", include_aliases=True) == [
        "bubble_tea", "cafe", "dessert_shop",
    ]


def test_union_across_moods_without_duplicates():
    engine = _engine({})
    cats = engine.resolve(["Romantic", "comfort bites"], "any")
    assert cats == ["restaurant", "dessert_shop"]


def test_unknown_mood_resolves_nothing():
    assert _engine({}).resolve(["zzz"], "any") == []


def test_load_rule_table(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"Bar Hop": {"Evening": ["bar"], "any": ["sports_bar"], "junk": "x"}}))
    table = load_rule_table(str(path))
    assert dict(table["bar hop"]) == {"evening": ("bar",), "any": ("sports_bar",)}


def test_load_rule_table_missing_or_broken(tmp_path):
    assert dict(load_rule_table(str(tmp_path / "nope.json"))) == {}
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    assert dict(load_rule_table(str(broken))) == {}
    assert dict(load_rule_table(None)) == {}
