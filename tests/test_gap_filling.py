import numpy as np
import pandas as pd
import pytest

from survey_trends.trends import gap_filling as gf


def _series(values):
    return pd.Series(values, dtype=float)


def test_fully_observed_series_unchanged():
    values = _series([3, 1, 4, 1, 5])
    filled = gf.extrapolate_series(gf.interpolate_series(values))
    np.testing.assert_array_equal(filled.values, values.values)


def test_single_interior_gap_is_linear():
    # a=2 at index 1, b=8 at index 4
    values = _series([1, 2, np.nan, np.nan, 8])
    filled = gf.interpolate_series(values)
    assert filled[2] == pytest.approx(2 + (8 - 2) * 1 / 3)
    assert filled[3] == pytest.approx(2 + (8 - 2) * 2 / 3)


def test_interpolation_leaves_boundaries():
    values = _series([np.nan, 2, np.nan, 4, np.nan])
    filled = gf.interpolate_series(values)
    assert np.isnan(filled[0])
    assert filled[2] == pytest.approx(3)
    assert np.isnan(filled[4])


def test_boundary_runs_hold_nearest_value():
    values = _series([np.nan, np.nan, 2, np.nan, 6, np.nan, np.nan])
    filled = gf.extrapolate_series(gf.interpolate_series(values))
    np.testing.assert_allclose(filled.values, [2, 2, 2, 4, 6, 6, 6])


def test_single_value_copied_everywhere():
    values = _series([np.nan, np.nan, 7, np.nan])
    filled = gf.extrapolate_series(gf.interpolate_series(values))
    np.testing.assert_allclose(filled.values, [7, 7, 7, 7])


def test_all_missing_stays_missing():
    values = _series([np.nan] * 4)
    filled = gf.extrapolate_series(gf.interpolate_series(values))
    assert filled.isna().all()


def test_complete_grid_adds_missing_years():
    df = pd.DataFrame({
        'site_id': ['S1', 'S1', 'S2'],
        'species_id': ['a', 'a', 'b'],
        'year': [2000, 2002, 2001],
        'raw_count': [1.0, 3.0, 5.0],
        'taxon': ['birds', 'birds', 'frogs'],
    })
    grid = gf.create_complete_site_species_year_grid(df, [2000, 2001, 2002])

    assert len(grid) == 6
    s1 = grid[grid['site_id'] == 'S1']
    assert s1['year'].tolist() == [2000, 2001, 2002]
    assert np.isnan(s1['raw_count'].iloc[1])
    assert (grid.loc[grid['site_id'] == 'S2', 'taxon'] == 'frogs').all()


def test_gap_fill_site_species_data_flags(wide_counts):
    from survey_trends.trends.data_loader import wide_to_long

    obs = wide_to_long(wide_counts)
    grid = gf.create_complete_site_species_year_grid(obs, list(range(2005, 2015)))
    filled = gf.gap_fill_site_species_data(grid)

    s2 = filled[(filled['site_id'] == 'S2') & (filled['species_id'] == 'sp_a')]
    assert s2['count'].tolist() == [3, 3, 3, 3, 4, 4, 5, 5, 5, 5]
    assert s2['gapFilling'].tolist() == (
        ['EXTRAPOLATED'] * 2 + ['ORIGINAL'] * 6 + ['EXTRAPOLATED'] * 2
    )

    s1 = filled[(filled['site_id'] == 'S1') & (filled['species_id'] == 'sp_a')]
    assert s1['count'].iloc[2] == pytest.approx(3)
    assert s1['gapFilling'].iloc[2] == 'INTERPOLATED'

    empty = filled[filled['species_id'] == 'sp_c']
    assert empty['count'].isna().all()
    assert (empty['gapFilling'] == 'MISSING').all()

    # raw counts survive untouched
    assert filled['raw_count'].notna().sum() == obs['raw_count'].notna().sum()
