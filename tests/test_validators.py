"""Tests for searchdeck.validators.

Covers:
- URL and search-template checks
- Engine validation rules (name, url, icon, color)
- Preferences sanitizer totality and range/type rules
- Whole-document validation errors and warnings
"""

from __future__ import annotations

import pytest

from searchdeck.models import PreferencesRecord
from searchdeck.validators import (
    check_engine,
    format_validation_error,
    is_valid_search_template,
    is_valid_url,
    validate_document,
    validate_engine,
    validate_preferences,
)

GOOD_URL = "https://x.com/s?q={query}"


class TestUrlChecks:
    """Tests for is_valid_url() and is_valid_search_template()."""

    @pytest.mark.parametrize(
        "value",
        [
            "https://example.com",
            "http://localhost:8080/path",
            "data:image/png;base64,AAAA",
        ],
    )
    def test_valid_urls(self, value):
        assert is_valid_url(value)

    @pytest.mark.parametrize(
        "value",
        ["", "example.com", "https://", "http://a b.com", None, 42, "https://x:99999"],
    )
    def test_invalid_urls(self, value):
        assert not is_valid_url(value)

    def test_template_requires_http_scheme(self):
        assert not is_valid_search_template("ftp://x.com/?q={query}")

    def test_template_requires_placeholder(self):
        assert not is_valid_search_template("https://x.com/?q=")

    def test_template_rejects_two_placeholders(self):
        assert not is_valid_search_template(
            "https://x.com/?q={query}&r={query}"
        )

    def test_template_accepts_path_placeholder(self):
        assert is_valid_search_template("https://x.com/search/{query}")


class TestValidateEngine:
    """Tests for validate_engine() / check_engine()."""

    def test_minimal_engine_is_valid(self):
        assert validate_engine({"name": "Foo", "url": GOOD_URL})

    def test_empty_name_rejected(self):
        """Empty name is rejected even with a good URL."""
        assert not validate_engine({"name": "", "url": "https://x.com?q={query}"})

    def test_whitespace_name_rejected(self):
        assert not validate_engine({"name": "   ", "url": GOOD_URL})

    def test_long_name_rejected(self):
        valid, reason = check_engine({"name": "x" * 51, "url": GOOD_URL})
        assert not valid
        assert "50" in reason

    def test_fifty_char_name_accepted(self):
        assert validate_engine({"name": "x" * 50, "url": GOOD_URL})

    @pytest.mark.parametrize(
        "extra",
        [
            {},
            {"icon": "https://x.com/i.png"},
            {"color": "#A1b2C3"},
            {"enabled": False, "sortOrder": 5},
        ],
    )
    def test_missing_placeholder_always_invalid(self, extra):
        """A URL without {query} is invalid regardless of other fields."""
        candidate = {"name": "Foo", "url": "https://x.com/s?q=", **extra}
        assert not validate_engine(candidate)

    def test_bad_icon_rejected(self):
        valid, reason = check_engine(
            {"name": "Foo", "url": GOOD_URL, "icon": "not a url"}
        )
        assert not valid
        assert reason == format_validation_error("Icon URL", "is not a valid URL")

    def test_empty_icon_ignored(self):
        assert validate_engine({"name": "Foo", "url": GOOD_URL, "icon": ""})

    @pytest.mark.parametrize("color", ["red", "#FFF", "#GGGGGG", "#1234567", 123])
    def test_bad_color_rejected(self, color):
        assert not validate_engine(
            {"name": "Foo", "url": GOOD_URL, "color": color}
        )

    def test_non_mapping_rejected(self):
        valid, reason = check_engine(["Foo", GOOD_URL])
        assert not valid
        assert reason == "Engine must be an object"


class TestValidatePreferences:
    """Tests for the validate_preferences() sanitizer."""

    def test_empty_returns_defaults(self):
        assert validate_preferences({}) == PreferencesRecord()

    @pytest.mark.parametrize("garbage", [None, 42, "text", [], {"x": object()}])
    def test_garbage_returns_defaults(self, garbage):
        assert validate_preferences(garbage) == PreferencesRecord()

    def test_valid_values_overlay_defaults(self):
        prefs = validate_preferences(
            {"theme": "dark", "resultsPerPage": 50, "enableHistory": False}
        )
        assert prefs.theme == "dark"
        assert prefs.results_per_page == 50
        assert prefs.enable_history is False
        assert prefs.default_engine == "google"

    def test_out_of_range_dropped_not_clamped(self):
        prefs = validate_preferences(
            {"resultsPerPage": 500, "maxHistoryItems": -1}
        )
        assert prefs.results_per_page == 10
        assert prefs.max_history_items == 1000

    def test_booleans_not_accepted_as_ints(self):
        prefs = validate_preferences({"resultsPerPage": True})
        assert prefs.results_per_page == 10

    def test_wrong_types_dropped(self):
        prefs = validate_preferences(
            {
                "theme": "neon",
                "openInNewTab": "yes",
                "defaultEngine": 7,
                "resultsPerPage": 20.0,
            }
        )
        assert prefs == PreferencesRecord()

    def test_unknown_keys_ignored(self):
        prefs = validate_preferences({"fontSize": 14, "theme": "auto"})
        assert prefs.theme == "auto"
        assert "fontSize" not in prefs.to_external()

    def test_boundaries_accepted(self):
        prefs = validate_preferences(
            {"resultsPerPage": 5, "maxHistoryItems": 0}
        )
        assert prefs.results_per_page == 5
        assert prefs.max_history_items == 0


class TestValidateDocument:
    """Tests for validate_document()."""

    def test_non_mapping_is_invalid(self):
        report = validate_document([1, 2])
        assert not report.valid
        assert report.errors == ["Configuration must be an object"]

    def test_missing_version_is_warning(self):
        report = validate_document({"engines": []})
        assert report.valid
        assert "No version specified in configuration" in report.warnings

    def test_other_version_is_warning(self):
        report = validate_document({"version": "2.0"})
        assert report.valid
        assert any("2.0" in w for w in report.warnings)

    def test_current_version_has_no_warning(self):
        report = validate_document({"version": "1.0"})
        assert report.valid
        assert report.warnings == []

    def test_engines_must_be_list(self):
        report = validate_document({"version": "1.0", "engines": {}})
        assert not report.valid
        assert report.errors == ["Engines must be an array"]

    def test_invalid_engines_are_index_tagged(self):
        report = validate_document(
            {
                "version": "1.0",
                "engines": [
                    {"name": "Ok", "url": GOOD_URL},
                    {"name": "", "url": GOOD_URL},
                    {"name": "Bad", "url": "https://x.com"},
                ],
            }
        )
        assert not report.valid
        assert len(report.errors) == 2
        assert report.errors[0].startswith("Invalid engine configuration at index 1")
        assert report.errors[1].startswith("Invalid engine configuration at index 2")

    def test_non_mapping_preferences_is_error(self):
        report = validate_document({"version": "1.0", "preferences": "dark"})
        assert not report.valid
        assert report.errors[0].startswith("Invalid preferences")

    def test_bad_preference_values_do_not_fail(self):
        report = validate_document(
            {"version": "1.0", "preferences": {"theme": "neon"}}
        )
        assert report.valid

    def test_non_list_history_is_warning(self):
        report = validate_document({"version": "1.0", "searchHistory": {}})
        assert report.valid
        assert "Search history should be an array" in report.warnings
