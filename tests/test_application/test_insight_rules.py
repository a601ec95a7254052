"""
Tests for insight generation rules: reply parsing, sanitization, heuristics, fallback.
"""
import json
import pytest
from unittest.mock import Mock

from suba.application.insight_rules import (
    MAX_INSIGHTS, build_prompt, extract_json_array, generate_insights,
    heuristic_insights, merge_insights, sanitize_insights,
)


def _item(message, type_="suggestion", confidence=0.9):
    return {"type": type_, "message": message, "affected_services": [], "confidence_score": confidence}


# ---------------------------------------------------------------------------
# extract_json_array
# ---------------------------------------------------------------------------

class TestExtractJsonArray:
    def test_bare_array(self):
        assert extract_json_array('[{"message": "a"}]') == [{"message": "a"}]

    def test_fenced_array(self):
        text = '```json\n[{"message": "a"}, {"message": "b"}]\n```'
        assert len(extract_json_array(text)) == 2

    def test_object_with_insights(self):
        assert extract_json_array('{"insights": [{"message": "x"}]}') == [{"message": "x"}]

    def test_array_embedded_in_prose(self):
        text = 'Sure! Here you go:\n[{"message": "x"}]\nHope that helps.'
        assert extract_json_array(text) == [{"message": "x"}]

    def test_object_embedded_in_prose(self):
        text = 'Result -> {"insights": [{"message": "y"}]} <- done'
        assert extract_json_array(text) == [{"message": "y"}]

    @pytest.mark.parametrize("text", [None, "", "no json here", '{"other": 1}', "[not json"])
    def test_unusable_reply(self, text):
        assert extract_json_array(text) == []


# ---------------------------------------------------------------------------
# sanitize_insights
# ---------------------------------------------------------------------------

class TestSanitize:
    def test_coerces_fields(self):
        raw = [
            "not an object",
            {"type": "weird", "message": "  Cancel Showmax  ", "affected_services": ["Showmax", 3, None],
             "confidence_score": "high"},
            {"type": "alert", "message": "   "},
            {"type": "alert", "message": "Due soon", "confidence_score": 1.7},
            {"type": "cost_saving_tip", "message": "Go yearly", "confidence_score": -2},
        ]
        out = sanitize_insights(raw)
        assert out == [
            {"type": "suggestion", "message": "Cancel Showmax", "affected_services": ["Showmax"],
             "confidence_score": 0.7},
            {"type": "alert", "message": "Due soon", "affected_services": [], "confidence_score": 1.0},
            {"type": "cost_saving_tip", "message": "Go yearly", "affected_services": [],
             "confidence_score": 0.0},
        ]

    def test_missing_confidence_defaults(self):
        assert sanitize_insights([{"message": "m"}])[0]["confidence_score"] == 0.7

    def test_affected_services_capped(self):
        item = {"message": "m", "affected_services": [f"s{i}" for i in range(15)]}
        assert len(sanitize_insights([item])[0]["affected_services"]) == 10

    def test_at_most_seven(self):
        assert len(sanitize_insights([{"message": f"m{i}"} for i in range(12)])) == MAX_INSIGHTS

    def test_non_list_input(self):
        assert sanitize_insights(None) == []


# ---------------------------------------------------------------------------
# heuristic_insights
# ---------------------------------------------------------------------------

def _features(**overrides):
    features = {
        "currency": "NGN",
        "total_monthly": 0,
        "subscriptions": [],
        "category_totals": [],
        "overlaps": [],
        "price_changes": [],
        "low_usage": [],
        "due_soon": [],
        "free_trials": [],
        "expensive": [],
    }
    features.update(overrides)
    return features


class TestHeuristics:
    def test_empty_features_give_baseline_only(self):
        out = heuristic_insights(_features())
        assert out == [{
            "type": "suggestion",
            "message": "You're spending about ₦0.00 per month across 0 subscriptions.",
            "affected_services": [],
            "confidence_score": 0.8,
        }]

    def test_all_rules(self):
        subs = [
            {"name": "Netflix", "category": "Streaming", "amount": 4400.0},
            {"name": "Showmax", "category": "Streaming", "amount": 2900.0},
            {"name": "DSTV", "category": "TV", "amount": 15700.0},
        ]
        features = _features(
            total_monthly=23000,
            subscriptions=subs,
            category_totals=[
                {"category": "TV", "monthly_total": 15700.0, "count": 1},
                {"category": "Streaming", "monthly_total": 7300.0, "count": 2},
            ],
            overlaps=[{"category": "Streaming", "names": ["Netflix", "Showmax"]}],
            due_soon=[subs[2]],
            low_usage=[subs[0], subs[1], subs[2], {"name": "Extra"}],
            price_changes=[{"name": "DSTV", "pct_diff": 0.2, "abs_diff": 2600}],
            expensive=[subs[2]],
        )
        out = heuristic_insights(features)
        messages = [i["message"] for i in out]
        assert messages == [
            "Overlap in Streaming: Netflix, Showmax. Keep one to save monthly.",
            "1 subscription due within 7 days: DSTV.",
            "No recent payments detected for Netflix, Showmax, DSTV. Consider pausing or cancelling.",
            "DSTV price appears to have increased by ~20% vs recent payments.",
            "Most spend in TV. Look for bundles/family plans for DSTV.",
            "DSTV is one of your most expensive plans at ₦15,700.00. Check for cheaper tiers or yearly savings.",
        ]
        assert [i["type"] for i in out] == [
            "overlap_detected", "alert", "suggestion", "alert", "suggestion", "cost_saving_tip",
        ]
        assert out[1]["confidence_score"] == 0.85
        assert out[2]["affected_services"] == ["Netflix", "Showmax", "DSTV"]

    def test_small_price_change_ignored(self):
        out = heuristic_insights(_features(price_changes=[{"name": "X", "pct_diff": -0.1}]))
        assert all("price appears" not in i["message"] for i in out)

    def test_price_decrease(self):
        out = heuristic_insights(_features(price_changes=[{"name": "X", "pct_diff": -0.5}]))
        assert out[0]["message"] == "X price appears to have decreased by ~50% vs recent payments."

    def test_due_soon_plural(self):
        out = heuristic_insights(_features(due_soon=[{"name": "A"}, {"name": "B"}]))
        assert out[0]["message"] == "2 subscriptions due within 7 days: A, B."

    def test_usd_baseline(self):
        out = heuristic_insights(_features(currency="USD", total_monthly=29.97,
                                           subscriptions=[{}, {}, {}]))
        assert out[-1]["message"] == "You're spending about $29.97 per month across 3 subscriptions."


class TestMergeAndGenerate:
    def test_merge_dedupes_and_caps(self):
        merged = merge_insights(
            [_item("a"), _item("b")],
            [_item("b"), _item("c"), _item("d"), _item("e"), _item("f"), _item("g"), _item("h")],
        )
        assert [i["message"] for i in merged] == ["a", "b", "c", "d", "e", "f", "g"]

    def test_no_client_uses_heuristics(self):
        out = generate_insights(_features())
        assert len(out) == 1
        assert out[0]["message"].startswith("You're spending about")

    def test_model_answer_with_three_items_used_as_is(self):
        client = Mock()
        client.generate_text.return_value = json.dumps([_item("one"), _item("two"), _item("three")])
        out = generate_insights(_features(), client)
        assert [i["message"] for i in out] == ["one", "two", "three"]
        prompt = client.generate_text.call_args[0][0]
        assert '"currency": "NGN"' in prompt

    def test_thin_model_answer_topped_up(self):
        client = Mock()
        client.generate_text.return_value = "```json\n[" + json.dumps(_item("only one")) + "]\n```"
        out = generate_insights(_features(), client)
        assert [i["message"] for i in out][0] == "only one"
        assert len(out) == 2

    def test_model_failure_falls_back(self, caplog):
        client = Mock()
        client.generate_text.side_effect = RuntimeError("quota exceeded")
        out = generate_insights(_features(), client)
        assert len(out) == 1
        assert "falling back to heuristics" in caplog.text

    def test_prompt_serializes_dates(self):
        from datetime import date
        prompt = build_prompt(_features(subscriptions=[{"next_billing_date": date(2026, 11, 1)}]))
        assert "2026-11-01" in prompt
