from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Ensure we can import survey_trends without installing the package
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))


def make_wide_counts(rows, years):
    """Build a wide count table from (site, species, lat, lon, taxon, state, counts) tuples."""
    records = []
    for site, species, lat, lon, taxon, state, counts in rows:
        record = {
            'site_id': site,
            'species_id': species,
            'latitude': lat,
            'longitude': lon,
            'protection_flag': 'unprotected',
            'taxon': taxon,
            'region_category': 'coastal',
            'state': state,
        }
        for year, count in zip(years, counts):
            record[str(year)] = count
        records.append(record)
    return pd.DataFrame(records)


@pytest.fixture
def years():
    return list(range(2005, 2015))


@pytest.fixture
def wide_counts(years):
    nan = np.nan
    rows = [
        ('S1', 'sp_a', -33.4, 151.2, 'birds', 'nsw', [1, 2, nan, 4, 5, 6, 7, 8, 9, 10]),
        ('S2', 'sp_a', -33.6, 151.4, 'birds', 'nsw', [nan, nan, 3, 3, 4, 4, 5, 5, nan, nan]),
        ('S1', 'sp_b', -33.4, 151.2, 'birds', 'nsw', [20, 18, 16, 0, 12, 10, 8, 6, 4, 2]),
        ('S3', 'sp_b', -20.2, 140.0, 'birds', 'QLD', [5, 5, 5, 5, 5, 5, 5, 5, 5, 5]),
        ('S3', 'sp_c', -20.2, 140.0, 'mammals', 'QLD', [nan] * 10),
        ('S4', 'sp_d', 5.0, 120.0, 'mammals', 'xx', [0, 1, 0, 2, 0, 3, 0, 4, 0, 5]),
    ]
    return make_wide_counts(rows, years)


@pytest.fixture
def species_traits():
    return pd.DataFrame({
        'species_id': ['sp_a', 'sp_b', 'sp_c'],
        'biogeography': ['temperate', 'tropical', 'tropical'],
    })


@pytest.fixture
def site_states():
    return pd.DataFrame({
        'site_id': ['S1', 'S2', 'S3'],
        'state': ['NSW', 'NSW', 'QLD'],
    })
