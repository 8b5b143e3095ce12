"""
Tests for input validation utilities.
"""

import pytest
from utils.validators import (
    validate_pin,
    validate_price,
    validate_currency,
    validate_country_code,
    parse_tent_count,
    sanitize_input
)


class TestValidatePin:
    """Tests for admin PIN validation."""

    def test_valid_pins(self):
        """Test 4 to 8 digit PINs."""
        assert validate_pin('1234') == (True, '')
        assert validate_pin('12345678') == (True, '')

    def test_invalid_pins(self):
        """Test PINs with wrong length or characters."""
        assert validate_pin('')[0] is False
        assert validate_pin(None)[0] is False
        assert validate_pin('123')[0] is False
        assert validate_pin('123456789')[0] is False
        assert validate_pin('12a4')[0] is False

    def test_error_message_in_spanish(self):
        """Test error message."""
        assert validate_pin('')[1] == 'El PIN es requerido'


class TestValidatePrice:
    """Tests for price validation."""

    @pytest.mark.parametrize('value', [0, 10, 12.5, '7', '0.99'])
    def test_valid(self, value):
        assert validate_price(value) is True

    @pytest.mark.parametrize('value', [-1, 'abc', None, float('nan'), float('inf'), True])
    def test_invalid(self, value):
        assert validate_price(value) is False


class TestValidateCodes:
    """Tests for currency and dialing codes."""

    def test_currency(self):
        assert validate_currency('USD') is True
        assert validate_currency('ves') is True
        assert validate_currency('') is False
        assert validate_currency('US') is False

    def test_country_code(self):
        assert validate_country_code('+58') is True
        assert validate_country_code('1') is True
        assert validate_country_code('') is False
        assert validate_country_code('+58-1') is False


class TestParseTentCount:
    """Tests for grid size parsing."""

    def test_number(self):
        assert parse_tent_count(12) == 12
        assert parse_tent_count('30') == 30

    def test_clamped(self):
        assert parse_tent_count(0) == 1
        assert parse_tent_count(-3) == 1
        assert parse_tent_count(1000) == 500
        assert parse_tent_count(80, max_count=50) == 50

    def test_not_a_number(self):
        assert parse_tent_count('muchos', default=8) == 8
        assert parse_tent_count(None) == 20


class TestSanitizeInput:
    """Tests for input sanitization."""

    def test_strip_whitespace(self):
        """Test whitespace stripping."""
        assert sanitize_input('  /Mapa.png  ') == '/Mapa.png'

    def test_max_length(self):
        """Test length limiting."""
        assert sanitize_input('abcdef', max_length=3) == 'abc'

    def test_empty_input(self):
        """Test empty input."""
        assert sanitize_input('') == ''
        assert sanitize_input(None) == ''
