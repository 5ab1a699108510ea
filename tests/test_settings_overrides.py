from __future__ import annotations

# pytest is the project's test runner for every automated check.
import pytest

# The real Settings loader, so tests see the packaged default config structure.
from cakecompiler.config.settings import get_settings

# The override helper is pure and guards which knobs a host may tune per session.
from cakecompiler.config.overrides import apply_settings_overrides


def test_apply_settings_overrides_returns_same_object_when_none():
    # Baseline settings are a cached Pydantic model.
    settings = get_settings()

    out = apply_settings_overrides(settings, None)

    # Identity, not equality: the helper returns early without rebuilding the model.
    assert out is settings


def test_apply_settings_overrides_can_override_allowed_numeric_knobs():
    settings = get_settings()

    overrides = {"scoring": {"self_weight": 0.5, "partner_weight": 0.5}}

    out = apply_settings_overrides(settings, overrides)

    assert out.scoring.self_weight == 0.5
    assert out.scoring.partner_weight == 0.5

    # The shared cached settings must stay untouched between sessions.
    assert settings.scoring.self_weight == 0.2


def test_apply_settings_overrides_allows_inference_band_edges_only():
    settings = get_settings()

    out = apply_settings_overrides(settings, {"inference": {"low_confidence": 0.3}})
    assert out.inference.low_confidence == 0.3
    assert out.inference.high_confidence == settings.inference.high_confidence

    with pytest.raises(ValueError, match=r"inference\.provider"):
        apply_settings_overrides(settings, {"inference": {"provider": "remote"}})


def test_apply_settings_overrides_rejects_disallowed_keys_with_clear_path():
    settings = get_settings()

    # The log level is process-wide, so a single session may not change it.
    overrides = {"app": {"log_level": "DEBUG"}}

    with pytest.raises(ValueError, match=r"disallowed key: 'app'"):
        apply_settings_overrides(settings, overrides)


def test_apply_settings_overrides_rejects_wrong_value_shapes_for_restricted_subtrees():
    settings = get_settings()

    # `inference` is a restricted subtree, so its override must be a mapping.
    overrides = {"inference": 0.5}

    with pytest.raises(ValueError, match=r"settings_overrides key 'inference' must be a mapping"):
        apply_settings_overrides(settings, overrides)


def test_apply_settings_overrides_revalidates_merged_values():
    settings = get_settings()

    # Both weights zero would make every happiness score undefined.
    with pytest.raises(ValueError, match="must be positive"):
        apply_settings_overrides(settings, {"scoring": {"self_weight": 0.0, "partner_weight": 0.0}})

    with pytest.raises(ValueError, match="min_rate"):
        apply_settings_overrides(settings, {"learning": {"min_rate": 0.6, "max_rate": 0.4}})

    # Inverted bands would leave no room for a moderate surprise.
    with pytest.raises(ValueError, match="surprise_threshold must not exceed"):
        apply_settings_overrides(settings, {"serendipity": {"surprise_threshold": 0.8}})
