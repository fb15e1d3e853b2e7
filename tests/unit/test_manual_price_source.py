"""Unit tests for the manually maintained price source."""
from __future__ import annotations

import pytest

from money_market.config import ManualOracleConfig, PriceOracleConfig, PythConfig
from money_market.constants import WAD
from money_market.errors import InvalidParameterError, NoValidPriceError, StalePriceError
from money_market.oracles import ManualPriceSource, build_price_source
from money_market.oracles.pyth import PythPriceSource


class _Clock:
    def __init__(self) -> None:
        self.now = 1_000

    def __call__(self) -> int:
        return self.now


class TestManualPriceSource:
    def test_set_and_read(self) -> None:
        clock = _Clock()
        source = ManualPriceSource(max_age_seconds=100, clock=clock)
        source.set_price("WETH", 2000 * WAD)
        assert source.get_price_with_timestamp("WETH") == (2000 * WAD, 1_000)

    def test_unknown_asset(self) -> None:
        source = ManualPriceSource()
        with pytest.raises(NoValidPriceError):
            source.get_price_with_timestamp("WETH")

    def test_non_positive_price_rejected(self) -> None:
        source = ManualPriceSource()
        with pytest.raises(InvalidParameterError):
            source.set_price("WETH", 0)

    def test_stale_after_max_age(self) -> None:
        clock = _Clock()
        source = ManualPriceSource(max_age_seconds=100, clock=clock)
        source.set_price("WETH", 2000 * WAD)
        clock.now += 100
        source.get_price_with_timestamp("WETH")
        clock.now += 1
        with pytest.raises(StalePriceError):
            source.get_price_with_timestamp("WETH")

    def test_explicit_timestamp(self) -> None:
        clock = _Clock()
        source = ManualPriceSource(max_age_seconds=100, clock=clock)
        source.set_price("WETH", 2000 * WAD, updated_at=800)
        with pytest.raises(StalePriceError):
            source.get_price_with_timestamp("WETH")

    def test_stale_is_a_no_valid_price(self) -> None:
        assert issubclass(StalePriceError, NoValidPriceError)

    def test_from_config(self) -> None:
        source = ManualPriceSource.from_config(
            ManualOracleConfig(prices={"DAI": "0.999", "WETH": "2000"}), max_age_seconds=60
        )
        assert source.symbols() == ["DAI", "WETH"]
        assert source.get_price_with_timestamp("DAI")[0] == 999 * WAD // 1000


class TestBuildPriceSource:
    def test_manual(self) -> None:
        source = build_price_source(
            PriceOracleConfig(provider="manual", manual=ManualOracleConfig(prices={"DAI": "1"}))
        )
        assert isinstance(source, ManualPriceSource)

    def test_pyth(self) -> None:
        source = build_price_source(
            PriceOracleConfig(provider="pyth", pyth=PythConfig(feeds={"DAI": "abc"}))
        )
        assert isinstance(source, PythPriceSource)
        assert source.symbols() == ["DAI"]

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError):
            build_price_source(PriceOracleConfig(provider="chainlink"))
