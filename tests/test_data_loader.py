import numpy as np
import pandas as pd
import pytest

from survey_trends.trends import data_loader as dl
from survey_trends.trends.data_loader import MalformedInputError


def test_wide_to_long_shape_and_order(wide_counts, years):
    long_df = dl.wide_to_long(wide_counts)

    assert len(long_df) == len(wide_counts) * len(years)
    assert list(long_df.columns[:4]) == ['site_id', 'species_id', 'year', 'raw_count']
    first = long_df[(long_df['site_id'] == 'S1') & (long_df['species_id'] == 'sp_a')]
    assert first['year'].tolist() == years
    assert np.isnan(first['raw_count'].iloc[2])
    assert first['raw_count'].iloc[3] == 4


def test_wide_to_long_rounds_coordinates(wide_counts):
    long_df = dl.wide_to_long(wide_counts)
    coords = long_df.drop_duplicates('site_id').set_index('site_id')

    assert coords.loc['S1', 'latitude'] == -33
    assert coords.loc['S2', 'latitude'] == -34
    assert coords.loc['S1', 'longitude'] == 151
    assert long_df['latitude'].dtype.kind == 'i'


def test_integer_year_columns_accepted(wide_counts):
    renamed = wide_counts.rename(columns={c: int(c) for c in wide_counts.columns if c.isdigit()})
    assert dl.get_year_columns(renamed) == list(range(2005, 2015))
    assert len(dl.wide_to_long(renamed)) == len(dl.wide_to_long(wide_counts))


def test_missing_column_names_table_and_column(wide_counts):
    with pytest.raises(MalformedInputError) as excinfo:
        dl.validate_wide_counts(wide_counts.drop(columns=['taxon']))
    assert excinfo.value.table == 'counts'
    assert 'taxon' in str(excinfo.value)


def test_non_contiguous_years_rejected(wide_counts):
    with pytest.raises(MalformedInputError, match='not contiguous'):
        dl.wide_to_long(wide_counts.drop(columns=['2008']))


def test_no_year_columns_rejected(wide_counts):
    year_cols = [c for c in wide_counts.columns if c.isdigit()]
    with pytest.raises(MalformedInputError, match='no year columns'):
        dl.validate_wide_counts(wide_counts.drop(columns=year_cols))


def test_no_rows_rejected(wide_counts):
    with pytest.raises(MalformedInputError, match=r'no \(site_id, species_id\) rows'):
        dl.validate_wide_counts(wide_counts.iloc[0:0])


def test_missing_identifiers_rejected(wide_counts):
    no_species = wide_counts.copy()
    no_species.loc[1, 'species_id'] = np.nan
    with pytest.raises(MalformedInputError, match='missing site_id/species_id'):
        dl.validate_wide_counts(no_species)

    no_site = wide_counts.copy()
    no_site.loc[0, 'site_id'] = None
    with pytest.raises(MalformedInputError, match='missing site_id/species_id'):
        dl.wide_to_long(no_site)


def test_negative_and_non_numeric_counts_rejected(wide_counts):
    negative = wide_counts.copy()
    negative.loc[0, '2006'] = -1
    with pytest.raises(MalformedInputError, match='negative'):
        dl.validate_wide_counts(negative)

    text = wide_counts.copy()
    text['2006'] = text['2006'].astype(object)
    text.loc[0, '2006'] = 'many'
    with pytest.raises(MalformedInputError, match='non-numeric'):
        dl.validate_wide_counts(text)


def test_duplicate_site_species_rejected(wide_counts):
    doubled = pd.concat([wide_counts, wide_counts.iloc[[0]]], ignore_index=True)
    with pytest.raises(MalformedInputError, match='duplicate'):
        dl.validate_wide_counts(doubled)


def test_reference_table_validation(species_traits):
    dl.validate_reference_table(species_traits, 'species_traits',
                                ['species_id', 'biogeography'], 'species_id')

    with pytest.raises(MalformedInputError, match='biogeography'):
        dl.validate_reference_table(species_traits.drop(columns=['biogeography']),
                                    'species_traits', ['species_id', 'biogeography'],
                                    'species_id')

    doubled = pd.concat([species_traits, species_traits.iloc[[0]]])
    with pytest.raises(MalformedInputError, match='duplicate species_id'):
        dl.validate_reference_table(doubled, 'species_traits',
                                    ['species_id', 'biogeography'], 'species_id')


def test_loaders_read_csv(tmp_path, wide_counts, species_traits):
    wide_counts.to_csv(tmp_path / 'counts_wide.csv', index=False)
    species_traits.to_csv(tmp_path / 'species_traits.csv', index=False)

    counts = dl.load_wide_counts(tmp_path / 'counts_wide.csv')
    assert 2005 in counts.columns
    assert dl.get_year_columns(counts) == list(range(2005, 2015))

    traits = dl.load_species_traits(tmp_path / 'species_traits.csv')
    assert list(traits.columns) == ['species_id', 'biogeography']


def test_loader_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        dl.load_site_states(tmp_path / 'nope.csv')


def test_unique_site_latitudes(wide_counts):
    sites = dl.get_unique_site_latitudes(dl.wide_to_long(wide_counts))
    assert sites['site_id'].tolist() == ['S1', 'S2', 'S3', 'S4']
    assert sites['latitude'].tolist() == [-33, -34, -20, 5]
