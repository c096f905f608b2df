# This project was developed with assistance from AI tools.
"""Tests for per-stage input parsing."""

from decimal import Decimal

import pytest

from walletbot.core.errors import InputValidationError
from walletbot.services.parsing import (
    ProfileCommand,
    is_affirmative,
    is_negative,
    parse_airtime,
    parse_amount,
    parse_choice,
    parse_free_text,
    parse_index,
    parse_name,
    parse_pin,
    parse_profile_command,
)


class TestPin:
    def test_valid(self):
        assert parse_pin(" 1234 ") == "1234"

    @pytest.mark.parametrize("value", ["123", "12345", "abcd", "12 34", ""])
    def test_rejects_malformed(self, value):
        with pytest.raises(InputValidationError) as exc:
            parse_pin(value)
        assert exc.value.key == "pin.invalid"


class TestChoice:
    def test_valid(self):
        assert parse_choice(" 3 ", range(1, 8)) == 3

    def test_rejects_out_of_range(self):
        with pytest.raises(InputValidationError) as exc:
            parse_choice("9", range(1, 8), key="menu.invalid_main")
        assert exc.value.key == "menu.invalid_main"

    def test_rejects_text(self):
        with pytest.raises(InputValidationError):
            parse_choice("balance", {1, 2})

    @pytest.mark.parametrize("value", ["²", "٣", "1.0"])
    def test_rejects_non_ascii_digits(self, value):
        with pytest.raises(InputValidationError):
            parse_choice(value, range(0, 10))


class TestIndex:
    def test_plain_number(self):
        assert parse_index(" 12 ") == 12

    @pytest.mark.parametrize("value", ["²", "-1", "one", ""])
    def test_not_a_number(self, value):
        assert parse_index(value) is None


class TestAmount:
    def test_plain_number(self):
        assert parse_amount("20") == Decimal("20.00")

    def test_with_dollar_and_comma(self):
        assert parse_amount("$1,250.5") == Decimal("1250.50")

    def test_ignores_trailing_words(self):
        assert parse_amount("$2 to 0772123456") == Decimal("2.00")

    @pytest.mark.parametrize("value", ["0", "-5", "abc", "", "$", "1.005", "NaN", "Infinity"])
    def test_rejects_invalid(self, value):
        with pytest.raises(InputValidationError) as exc:
            parse_amount(value)
        assert exc.value.key == "amount.invalid"

    @pytest.mark.parametrize("value", ["1e30", "9" * 30, "10000000000"])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(InputValidationError) as exc:
            parse_amount(value)
        assert exc.value.key == "amount.invalid"

    def test_largest_accepted(self):
        assert parse_amount("9999999999.99") == Decimal("9999999999.99")

    def test_custom_key(self):
        with pytest.raises(InputValidationError) as exc:
            parse_amount("lots", key="loan.invalid_amount")
        assert exc.value.key == "loan.invalid_amount"


class TestAirtime:
    def test_amount_and_number(self):
        assert parse_airtime("$2 to 0772123456") == (Decimal("2.00"), "0772123456")

    def test_international_number(self):
        assert parse_airtime("5 for +263772123456") == (Decimal("5.00"), "+263772123456")

    def test_amount_only(self):
        assert parse_airtime("$3") == (Decimal("3.00"), None)

    def test_rejects_missing_amount(self):
        with pytest.raises(InputValidationError) as exc:
            parse_airtime("to 0772123456")
        assert exc.value.key == "airtime.invalid"


class TestNames:
    def test_title_cases_and_collapses(self):
        assert parse_name("  tendai   moyo ") == "Tendai Moyo"

    def test_rejects_blank(self):
        with pytest.raises(InputValidationError) as exc:
            parse_name("   ")
        assert exc.value.key == "name.invalid"

    def test_free_text_collapses_whitespace(self):
        assert parse_free_text(" pays   on time ", key="recommend.reason_empty") == "pays on time"

    def test_free_text_rejects_blank(self):
        with pytest.raises(InputValidationError) as exc:
            parse_free_text("", key="decline.reason_empty")
        assert exc.value.key == "decline.reason_empty"


class TestYesNo:
    @pytest.mark.parametrize("value", ["yes", "Y", "ok", "Hongu", "✅", "yes please"])
    def test_affirmative(self, value):
        assert is_affirmative(value)

    @pytest.mark.parametrize("value", ["no", "N", "kwete", "❌"])
    def test_negative(self, value):
        assert is_negative(value)
        assert not is_affirmative(value)

    def test_neither(self):
        assert not is_affirmative("maybe")
        assert not is_negative("maybe")


class TestProfileCommand:
    def test_role(self):
        assert parse_profile_command("Role Elder") == ProfileCommand("role", "elder")

    @pytest.mark.parametrize("alias", ["a", "regiona", "region_a"])
    def test_region_aliases(self, alias):
        assert parse_profile_command(f"region {alias}") == ProfileCommand("region", "region_a")

    @pytest.mark.parametrize("command", ["language sn", "lang sn"])
    def test_language(self, command):
        assert parse_profile_command(command) == ProfileCommand("language", "sn")

    @pytest.mark.parametrize(
        "value,key",
        [
            ("role bishop", "profile.bad_role"),
            ("region c", "profile.bad_region"),
            ("language shona!", "profile.bad_language"),
        ],
    )
    def test_rejects_unknown_values(self, value, key):
        with pytest.raises(InputValidationError) as exc:
            parse_profile_command(value)
        assert exc.value.key == key

    @pytest.mark.parametrize("value", ["1", "hello there friend", "send money", ""])
    def test_not_a_command(self, value):
        assert parse_profile_command(value) is None
