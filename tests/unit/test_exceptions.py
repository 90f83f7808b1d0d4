"""Unit tests for core exceptions."""
import pytest

from riskcalc.core.exceptions import (
    ConfigError,
    DataError,
    InstrumentError,
    PriceLookupError,
    RiskCalcError,
)


class TestExceptionHierarchy:
    def test_exception_hierarchy(self):
        assert issubclass(ConfigError, RiskCalcError)
        assert issubclass(PriceLookupError, RiskCalcError)
        assert issubclass(DataError, RiskCalcError)
        assert issubclass(InstrumentError, RiskCalcError)

    def test_base_exception_is_exception(self):
        assert issubclass(RiskCalcError, Exception)


class TestRiskCalcError:
    def test_base_exception_message(self):
        err = RiskCalcError("Something went wrong")
        assert str(err) == "Something went wrong"

    def test_catch_subclass_via_base(self):
        with pytest.raises(RiskCalcError):
            raise DataError("bad file")


class TestPriceLookupError:
    def test_attributes(self):
        err = PriceLookupError("EURUSD", "FX feed returned no rates")
        assert err.pair == "EURUSD"
        assert err.reason == "FX feed returned no rates"

    def test_format(self):
        err = PriceLookupError("GER40", "timeout")
        assert str(err) == "[GER40] Price lookup failed: timeout"


class TestInstrumentError:
    def test_attributes(self):
        err = InstrumentError("FOO", "unrecognised instrument format")
        assert err.pair == "FOO"
        assert err.reason == "unrecognised instrument format"

    def test_format(self):
        err = InstrumentError("EUR/", "expected BASE/QUOTE")
        assert str(err) == "[EUR/] Invalid instrument: expected BASE/QUOTE"
