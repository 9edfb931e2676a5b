"""
Unit tests for tier classification (rotator/backup/classifier.py).
"""

import pytest

from rotator.backup.classifier import classify_tier
from rotator.backup.naming import Tier


class TestClassifyTier:
    """Test classify_tier decisions."""

    def test_empty_catalog_is_yearly(self):
        assert classify_tier([], 'web1', 2024, 1) == Tier.YEARLY

    def test_yearly_missing_ignores_monthly_and_daily(self, archives):
        catalog = (
            archives.generation('web1', 'monthly', '2024-03-01_03:00:00')
            + archives.generation('web1', 'daily', '2024-03-02_03:00:00')
            + archives.generation('web1', 'yearly', '2023-01-01_03:00:00')
        )

        assert classify_tier(catalog, 'web1', 2024, 3) == Tier.YEARLY

    def test_yearly_present_month_missing_is_monthly(self, archives):
        catalog = (
            archives.generation('web1', 'yearly', '2024-01-01_03:00:00')
            + archives.generation('web1', 'monthly', '2024-02-01_03:00:00')
        )

        assert classify_tier(catalog, 'web1', 2024, 3) == Tier.MONTHLY

    def test_yearly_and_month_present_is_daily(self, archives):
        catalog = (
            archives.generation('web1', 'yearly', '2024-01-01_03:00:00')
            + archives.generation('web1', 'monthly', '2024-03-01_03:00:00')
        )

        assert classify_tier(catalog, 'web1', 2024, 3) == Tier.DAILY

    def test_yearly_month_does_not_count_as_monthly(self, archives):
        """The January yearly archive does not satisfy January's monthly check."""
        catalog = archives.generation('web1', 'yearly', '2024-01-01_03:00:00')

        assert classify_tier(catalog, 'web1', 2024, 1) == Tier.MONTHLY

    def test_other_hosts_are_ignored(self, archives):
        catalog = (
            archives.generation('web2', 'yearly', '2024-01-01_03:00:00')
            + archives.generation('web2', 'monthly', '2024-03-01_03:00:00')
        )

        assert classify_tier(catalog, 'web1', 2024, 3) == Tier.YEARLY

    def test_host_prefix_of_another_host(self, archives):
        """Host 'web' must not match archives of host 'web-1'."""
        catalog = archives.generation('web-1', 'yearly', '2024-01-01_03:00:00')

        assert classify_tier(catalog, 'web', 2024, 5) == Tier.YEARLY

    def test_only_existence_matters(self, archives):
        catalog = (
            archives.generation('web1', 'yearly', '2024-01-01_03:00:00', targets=('/etc',))
            + archives.generation('web1', 'monthly', '2024-06-01_03:00:00', targets=('/etc',))
        )

        assert classify_tier(catalog, 'web1', 2024, 6) == Tier.DAILY

    @pytest.mark.parametrize("year,month,expected", [
        (2024, 6, Tier.DAILY),
        (2024, 7, Tier.MONTHLY),
        (2025, 6, Tier.YEARLY),
    ])
    def test_calendar_boundaries(self, archives, year, month, expected):
        catalog = (
            archives.generation('web1', 'yearly', '2024-01-01_03:00:00')
            + archives.generation('web1', 'monthly', '2024-06-01_03:00:00')
        )

        assert classify_tier(catalog, 'web1', year, month) == expected
