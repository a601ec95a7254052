"""
Insight text generation: language-model prompt/response handling plus the
deterministic heuristic rule set used when the model is unavailable or
returns too little.
"""
import json
import logging
import math
import re
from typing import Any, Dict, List

from suba.utils.money import format_money

logger = logging.getLogger(__name__)

VALID_TYPES = frozenset({"cost_saving_tip", "overlap_detected", "alert", "suggestion"})
MAX_INSIGHTS = 7
MAX_AFFECTED_SERVICES = 10
MIN_MODEL_INSIGHTS = 3
DEFAULT_CONFIDENCE = 0.7

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

PROMPT_TEMPLATE = """
You are a subscription optimization assistant. Generate concise, actionable insights based on the data below.

Return ONLY a JSON array (no prose). Each item must match:
{{ "type": "cost_saving_tip|overlap_detected|alert|suggestion", "message": string, "affected_services": string[], "confidence_score": 0.0-1.0 }}

Guidelines:
- Be concrete: mention service names, categories, due windows, savings or alternatives.
- Prefer Nigeria-friendly ideas if currency is NGN (DSTV/GOtv/MTN/Quickteller/USSD references OK).
- 3-7 total insights. Avoid duplicates.

Data:
{data}
""".strip()


def build_prompt(features: Dict[str, Any]) -> str:
    return PROMPT_TEMPLATE.format(data=json.dumps(features, indent=2, default=str))


def _insights_from(parsed) -> List[Any] | None:
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict) and isinstance(parsed.get("insights"), list):
        return parsed["insights"]
    return None


def extract_json_array(text: str | None) -> List[Any]:
    """
    Pull the insight list out of a model reply.

    Accepts a bare JSON array, an object with an ``insights`` array, either
    of them wrapped in markdown code fences, or embedded in surrounding prose.
    Anything else yields an empty list.
    """
    if not text:
        return []
    cleaned = _FENCE_RE.sub("", text).strip()

    try:
        found = _insights_from(json.loads(cleaned))
        if found is not None:
            return found
    except ValueError:
        pass

    for pattern in (_ARRAY_RE, _OBJECT_RE):
        match = pattern.search(cleaned)
        if not match:
            continue
        try:
            found = _insights_from(json.loads(match.group(0)))
        except ValueError:
            continue
        if found is not None:
            return found
    return []


def _confidence(value) -> float:
    if isinstance(value, bool):
        value = float(value)
    try:
        conf = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if not math.isfinite(conf):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, conf))


def sanitize_insights(items) -> List[Dict[str, Any]]:
    """Coerce raw items into well-formed insights, at most MAX_INSIGHTS."""
    out: List[Dict[str, Any]] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        message = str(item.get("message") or "").strip()
        if not message:
            continue
        item_type = str(item.get("type"))
        affected = item.get("affected_services")
        affected = [x for x in affected if isinstance(x, str)] if isinstance(affected, list) else []
        out.append({
            "type": item_type if item_type in VALID_TYPES else "suggestion",
            "message": message,
            "affected_services": affected[:MAX_AFFECTED_SERVICES],
            "confidence_score": _confidence(item.get("confidence_score")),
        })
    return out[:MAX_INSIGHTS]


def heuristic_insights(features: Dict[str, Any]) -> List[Dict[str, Any]]:
    """One rule per signal, plus a total-spend baseline when fewer than 3 fire."""
    insights: List[Dict[str, Any]] = []
    currency = features.get("currency") or "NGN"

    overlaps = features.get("overlaps") or []
    if overlaps:
        top = overlaps[0]
        names = top.get("names") or []
        if len(names) >= 2:
            insights.append({
                "type": "overlap_detected",
                "message": f"Overlap in {top['category']}: {', '.join(names)}. Keep one to save monthly.",
                "affected_services": names,
                "confidence_score": 0.8,
            })

    due_soon = [s["name"] for s in features.get("due_soon") or [] if s.get("name")]
    if due_soon:
        plural = "s" if len(due_soon) > 1 else ""
        insights.append({
            "type": "alert",
            "message": f"{len(due_soon)} subscription{plural} due within 7 days: {', '.join(due_soon)}.",
            "affected_services": due_soon,
            "confidence_score": 0.85,
        })

    low_usage = [s["name"] for s in (features.get("low_usage") or [])[:3] if s.get("name")]
    if low_usage:
        insights.append({
            "type": "suggestion",
            "message": f"No recent payments detected for {', '.join(low_usage)}. Consider pausing or cancelling.",
            "affected_services": low_usage,
            "confidence_score": 0.7,
        })

    price_changes = features.get("price_changes") or []
    if price_changes:
        first = price_changes[0]
        name = first.get("name")
        pct = int(round((first.get("pct_diff") or 0) * 100))
        if name and abs(pct) >= 15:
            direction = "increased" if pct > 0 else "decreased"
            insights.append({
                "type": "alert",
                "message": f"{name} price appears to have {direction} by ~{abs(pct)}% vs recent payments.",
                "affected_services": [name],
                "confidence_score": 0.75,
            })

    category_totals = features.get("category_totals") or []
    if category_totals and category_totals[0].get("monthly_total", 0) > 0:
        top_cat = category_totals[0]["category"]
        names = [
            s["name"] for s in features.get("subscriptions") or []
            if (s.get("category") or "Uncategorized") == top_cat
        ]
        insights.append({
            "type": "suggestion",
            "message": f"Most spend in {top_cat}. Look for bundles/family plans for {', '.join(names)}.",
            "affected_services": names,
            "confidence_score": 0.7,
        })

    expensive = features.get("expensive") or []
    if expensive:
        top = max(expensive, key=lambda s: float(s.get("amount") or 0))
        if top.get("name"):
            insights.append({
                "type": "cost_saving_tip",
                "message": (
                    f"{top['name']} is one of your most expensive plans at "
                    f"{format_money(top.get('amount'), currency)}. "
                    "Check for cheaper tiers or yearly savings."
                ),
                "affected_services": [top["name"]],
                "confidence_score": 0.72,
            })

    if len(insights) < 3:
        total = format_money(features.get("total_monthly"), currency)
        count = len(features.get("subscriptions") or [])
        insights.append({
            "type": "suggestion",
            "message": f"You're spending about {total} per month across {count} subscriptions.",
            "affected_services": [],
            "confidence_score": 0.8,
        })

    return insights[:MAX_INSIGHTS]


def merge_insights(*groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Concatenate, drop repeated messages (exact match), cap at MAX_INSIGHTS."""
    merged: List[Dict[str, Any]] = []
    seen: set[str] = set()
    for group in groups:
        for item in group:
            if item["message"] in seen:
                continue
            seen.add(item["message"])
            merged.append(item)
    return merged[:MAX_INSIGHTS]


def generate_insights(features: Dict[str, Any], client=None) -> List[Dict[str, Any]]:
    """
    Ask the model first; top up with heuristics when it gives fewer than 3.

    ``client`` is anything with ``generate_text(prompt) -> str`` (or None
    when no model is configured). Model failures are logged, never raised.
    """
    from_model: List[Dict[str, Any]] = []
    if client is not None:
        try:
            reply = client.generate_text(build_prompt(features))
            from_model = sanitize_insights(extract_json_array(reply))
        except Exception:
            logger.exception("Model insight generation failed, falling back to heuristics")

    if len(from_model) >= MIN_MODEL_INSIGHTS:
        return from_model
    return merge_insights(from_model, heuristic_insights(features))
