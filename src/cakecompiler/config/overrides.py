"""
Per-session settings overrides.

A host may tune a selection session without touching the shared, cached `Settings`
("equal weights tonight", "learn faster from this partner"). Only whitelisted sections are
accepted; the merged payload is validated again by Pydantic, so a session can never run
with out-of-range weights, thresholds or learning-rate bounds.

The `app` section (name, log level) is process-wide and never overridable per session.
"""

from __future__ import annotations

from typing import Any, Mapping

from cakecompiler.config.settings import Settings

# Leaf `True`: any key below is accepted. Nested mapping: only the listed keys are.
ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    "scoring": True,
    "serendipity": True,
    "learning": True,
    "shake": True,
    "inference": {"high_confidence": True, "low_confidence": True},
}


def _dotted(path: tuple[str, ...]) -> str:
    return ".".join(path)


def _filter_overrides(
    overrides: Mapping[str, Any],
    *,
    allowed_tree: Mapping[str, Any],
    path: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Copy `overrides`, raising ValueError on the first key outside `allowed_tree`."""
    accepted: dict[str, Any] = {}
    for key, value in overrides.items():
        key_path = (*path, key)
        rule = allowed_tree.get(key)
        if rule is None:
            raise ValueError(f"settings_overrides contains a disallowed key: '{_dotted(key_path)}'")
        if rule is True:
            accepted[key] = value
        elif isinstance(value, Mapping):
            accepted[key] = _filter_overrides(value, allowed_tree=rule, path=key_path)
        else:
            raise ValueError(f"settings_overrides key '{_dotted(key_path)}' must be a mapping")
    return accepted


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """New mapping with `override` laid over `base`; neither input is mutated."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    """Return a new Settings with the whitelisted overrides applied (or `settings` itself)."""
    if not overrides:
        return settings

    accepted = _filter_overrides(overrides, allowed_tree=ALLOWED_SETTINGS_OVERRIDES_TREE)
    return Settings.model_validate(_deep_merge(settings.model_dump(mode="python"), accepted))
