"""Tests for pdfturn.page_count module."""

import asyncio

import pytest

from pdfturn.page_count import PageCount, estimate_page_count, resolve_page_count


class TestEstimatePageCount:
    @pytest.mark.parametrize("size,expected", [
        (0, 1),
        (49_999, 1),
        (50_000, 1),
        (149_999, 2),
        (500_000, 10),
    ])
    def test_estimate(self, size, expected):
        assert estimate_page_count(size) == expected

    def test_custom_divisor(self):
        assert estimate_page_count(10_000, bytes_per_page=1_000) == 10


class TestResolvePageCount:
    """Test oracle-first page count resolution."""

    def test_oracle_answer_is_authoritative(self):
        async def oracle(data):
            return 7

        count = asyncio.run(resolve_page_count(b"x" * 10, oracle))
        assert count == PageCount(7, authoritative=True)
        assert int(count) == 7

    def test_no_oracle_estimates(self):
        count = asyncio.run(resolve_page_count(b"x" * 120_000))
        assert count == PageCount(2, authoritative=False)

    def test_failing_oracle_estimates(self, caplog):
        async def oracle(data):
            raise ConnectionError("service down")

        with caplog.at_level("WARNING", logger="pdfturn"):
            count = asyncio.run(resolve_page_count(b"x" * 10, oracle))
        assert count == PageCount(1, authoritative=False)
        assert "service down" in caplog.text

    @pytest.mark.parametrize("answer", [0, -3, None, "4"])
    def test_unusable_answer_estimates(self, answer):
        async def oracle(data):
            return answer

        count = asyncio.run(resolve_page_count(b"x" * 100_000, oracle))
        assert count == PageCount(2, authoritative=False)

    def test_custom_bytes_per_page(self):
        count = asyncio.run(resolve_page_count(b"x" * 1_000, bytes_per_page=100))
        assert count.value == 10
