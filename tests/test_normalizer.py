"""
Tests for offer normalization and input validation.

Covers commission unit resolution, contingency deduplication, buyer
type classification and rejection of malformed input.
"""

import pytest

from offer_engine.core import (
    BuyerType,
    OfferSource,
    ValidationError,
    classify_buyer_type,
    dedupe_contingencies,
    normalize_offer,
    resolve_commission,
    validate_listing_fields,
)


# --- Commission Resolution ---

class TestResolveCommission:
    """Test percent vs dollar commission handling."""

    def test_small_value_is_percent(self):
        """3 on a $700k offer is 3% -> $21,000."""
        dollars, was_percent, percent = resolve_commission(700_000, 3)
        assert dollars == pytest.approx(21_000)
        assert was_percent is True
        assert percent == 3

    def test_threshold_is_percent(self):
        dollars, was_percent, _ = resolve_commission(500_000, 20)
        assert dollars == pytest.approx(100_000)
        assert was_percent is True

    def test_large_value_is_dollars(self):
        """25000 is above the threshold and stays dollars."""
        dollars, was_percent, percent = resolve_commission(700_000, 25_000)
        assert dollars == 25_000
        assert was_percent is False
        assert percent is None

    def test_just_above_threshold_is_dollars(self):
        dollars, was_percent, _ = resolve_commission(700_000, 20.5)
        assert dollars == 20.5
        assert was_percent is False

    def test_missing_commission_defaults_to_six_percent(self):
        dollars, was_percent, percent = resolve_commission(700_000, None)
        assert dollars == pytest.approx(42_000)
        assert was_percent is True
        assert percent == 6.0

    def test_zero_commission_is_zero_dollars(self):
        dollars, was_percent, _ = resolve_commission(700_000, 0)
        assert dollars == 0
        assert was_percent is False

    def test_explicit_dollar_unit_overrides_heuristic(self):
        dollars, was_percent, _ = resolve_commission(700_000, 15, unit="dollar")
        assert dollars == 15
        assert was_percent is False

    def test_explicit_percent_unit_overrides_heuristic(self):
        dollars, was_percent, percent = resolve_commission(1_000_000, 25, unit="percent")
        assert dollars == pytest.approx(250_000)
        assert was_percent is True
        assert percent == 25

    def test_huge_price_stays_finite(self):
        dollars, _, _ = resolve_commission(1.7e308, 3)
        assert dollars == pytest.approx(5.1e306)
        default, _, _ = resolve_commission(1.7e308, None)
        assert default == pytest.approx(1.02e307)


# --- Contingencies and Buyer Type ---

class TestContingencies:
    """Test contingency deduplication."""

    def test_case_insensitive_dedupe_keeps_first_spelling(self):
        result = dedupe_contingencies(["Inspection", "inspection ", "Financing", "INSPECTION"])
        assert result == ("Inspection", "Financing")

    def test_blank_entries_dropped(self):
        assert dedupe_contingencies(["", "  ", None, "appraisal"]) == ("appraisal",)

    def test_empty_input(self):
        assert dedupe_contingencies(None) == ()
        assert dedupe_contingencies([]) == ()


class TestBuyerType:
    """Test free-text buyer type classification."""

    @pytest.mark.parametrize("value,expected", [
        ("cash", BuyerType.CASH),
        ("All Cash", BuyerType.CASH),
        ("pre-approved", BuyerType.PRE_APPROVED),
        ("Preapproved", BuyerType.PRE_APPROVED),
        ("first time", BuyerType.FIRST_TIME),
        ("investor", BuyerType.INVESTOR),
        ("hedge fund", BuyerType.OTHER),
        (None, BuyerType.OTHER),
        ("", BuyerType.OTHER),
    ])
    def test_classification(self, value, expected):
        assert classify_buyer_type(value) == expected


# --- Normalize Offer ---

class TestNormalizeOffer:
    """Test full payload normalization."""

    def test_camel_case_payload(self):
        normalized = normalize_offer({
            "buyerName": "  Jane Doe ",
            "buyerType": "cash",
            "price": "700,000",
            "agentCommission": "3",
            "closingTimelineDays": "30",
            "contingencies": ["inspection", "Inspection"],
        })
        assert normalized.buyer_name == "Jane Doe"
        assert normalized.buyer_type == BuyerType.CASH
        assert normalized.price == 700_000
        assert normalized.agent_commission == pytest.approx(21_000)
        assert normalized.closing_timeline_days == 30
        assert normalized.contingencies == ("inspection",)
        assert normalized.source == OfferSource.MANUAL

    def test_dollar_string_price(self):
        normalized = normalize_offer({"price": "$650,000", "closing_timeline_days": 45})
        assert normalized.price == 650_000

    def test_fractional_timeline_truncates(self):
        normalized = normalize_offer({"price": 500_000, "closing_timeline_days": "30.9"})
        assert normalized.closing_timeline_days == 30

    def test_normalizing_payload_again_is_stable(self):
        """A resolved payload normalizes to the same result."""
        first = normalize_offer({
            "price": 700_000,
            "agent_commission": 3,
            "closing_timeline_days": 30,
            "contingencies": ["inspection"],
        })
        second = normalize_offer(first.to_payload())
        assert second == first

    def test_missing_price_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_offer({"closing_timeline_days": 30})
        assert exc_info.value.field == "price"

    def test_non_numeric_price_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_offer({"price": "lots", "closing_timeline_days": 30})
        assert exc_info.value.field == "price"

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            normalize_offer({"price": -1, "closing_timeline_days": 30})

    def test_boolean_price_rejected(self):
        with pytest.raises(ValidationError):
            normalize_offer({"price": True, "closing_timeline_days": 30})

    def test_all_field_errors_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_offer({"price": "abc", "agent_commission": "xyz"})
        fields = {e["field"] for e in exc_info.value.details()}
        assert fields == {"price", "closing_timeline_days", "agent_commission"}

    def test_unknown_commission_unit_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_offer({
                "price": 700_000,
                "agent_commission": 3,
                "commission_unit": "basis_points",
                "closing_timeline_days": 30,
            })
        assert exc_info.value.field == "commission_unit"

    def test_contingencies_must_be_list(self):
        with pytest.raises(ValidationError):
            normalize_offer({"price": 700_000, "closing_timeline_days": 30, "contingencies": 5})


# --- Listing Validation ---

class TestListingValidation:
    """Test listing input validation."""

    def test_valid_listing(self):
        result = validate_listing_fields({
            "address": "1 Main St",
            "city": "Austin",
            "state": "TX",
            "zip_code": "78701",
            "asking_price": "500,000",
        })
        assert result.is_valid
        assert result.warnings == []

    def test_missing_fields(self):
        result = validate_listing_fields({"address": "1 Main St"})
        assert not result.is_valid
        fields = {e.field for e in result.errors}
        assert {"city", "state", "zip_code", "asking_price"} <= fields

    def test_loan_above_asking_warns(self):
        result = validate_listing_fields({
            "address": "1 Main St",
            "city": "Austin",
            "state": "TX",
            "zip_code": "78701",
            "asking_price": 300_000,
            "loan_balance": 400_000,
        })
        assert result.is_valid
        assert len(result.warnings) == 1
