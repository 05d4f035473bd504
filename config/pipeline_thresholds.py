"""
Pipeline Thresholds Configuration

Hand-tuned product thresholds for the decision gates, plan generation and
progression. Values here are product tuning, not a model: change them here
rather than inline in the gates.
"""

# Input ceilings
INPUT_LIMITS = {
    "max_chars": 350,
    "min_days": 1,
    "max_days": 365,
    "default_days": 14,
}

# Realism gate day thresholds (per domain category)
REALISM_THRESHOLDS = {
    "short_window_days": 30,        # Level claim / extreme scope window
    "language_claim_min_days": 60,  # Fluent/native claims for languages
    "instrument_claim_min_days": 90,
    "endurance_sport_min_days": 90,
    "recommended_days": 90,
    "mini_days": 7,
    "ambitious_days": 90,
}

# Plan generation targets
PLAN_TARGETS = {
    "levels_by_days": [(14, 2), (30, 3)],  # (max_days, levels); above the last bound → default_levels
    "default_levels": 4,
    "min_steps_per_level": 4,
    "max_steps_per_level": 5,
    "min_duration_minutes": 5,
    "max_duration_minutes": 10,
    "max_resources_per_stub": 3,
    "max_attempts": 2,
    "excerpt_chars": 700,
    "description_sentences": (2, 4),
    "feasibility_sentences": (2, 2),
}

# Mission content blocks
MISSION_BLOCKS = {
    "min_blocks": 2,
    "max_blocks": 4,
}

# Progression / remediation
PROGRESSION = {
    "remediation_delay_days": 1,
    "max_failures_before_failed": 3,
    "max_notes_chars": 280,
    "max_time_spent_minutes": 60,
}

# Clarify chips cache
CLARIFY_CHIPS = {
    "ttl_days": 30,
    "maxsize": 5000,
    "max_intent_chars": 160,
}
