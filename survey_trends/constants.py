"""
Constants used across the survey-trends codebase.
"""

# Identifier and attribute columns of the wide count table
SITE_COL = 'site_id'
SPECIES_COL = 'species_id'
YEAR_COL = 'year'
RAW_COUNT_COL = 'raw_count'
LAT_COL = 'latitude'
LON_COL = 'longitude'

SITE_ATTRIBUTE_COLS = [
    'latitude',
    'longitude',
    'protection_flag',
    'taxon',
    'region_category',
    'state',
]
WIDE_ID_COLS = [SITE_COL, SPECIES_COL] + SITE_ATTRIBUTE_COLS

# Reference tables
BIOGEOGRAPHY_COL = 'biogeography'
STATE_COL = 'state'
TAXON_COL = 'taxon'
SPECIES_TRAIT_COLS = [SPECIES_COL, BIOGEOGRAPHY_COL]
SITE_STATE_COLS = [SITE_COL, STATE_COL]

# Grid cells are coordinates rounded to whole degrees
GRID_COLS = [LAT_COL, LON_COL]

# Trend window: the reporting period starts after 2007 and runs to the
# last surveyed year unless configured otherwise
TREND_START_YEAR = 2008
BASELINE_YEAR = 2008

# Number of years at each end of the window used for the change ratio
CHANGE_PERIOD_LENGTH = 3
FIRST_PERIOD = 'first'
SECOND_PERIOD = 'second'

# Spearman testing needs strictly more than this many yearly values
MIN_SPEARMAN_OBSERVATIONS = 5

# p-value thresholds, most significant first
SIGNIFICANCE_LEVELS = [
    (0.001, '***'),
    (0.01, '**'),
    (0.05, '*'),
]

# Latitude bands (degrees)
LAT_BIN_LOWER = -45
LAT_BIN_UPPER = 0
LAT_BIN_WIDTH = 5
LAT_BIN_COL = 'lat_bin'

# Gap filling flags
ORIGINAL = 'ORIGINAL'
INTERPOLATED = 'INTERPOLATED'
EXTRAPOLATED = 'EXTRAPOLATED'
MISSING = 'MISSING'

# Default input/output file names
COUNTS_FILE = 'counts_wide.csv'
SPECIES_TRAITS_FILE = 'species_traits.csv'
SITE_STATES_FILE = 'site_states.csv'

OUTPUT_TABLES = [
    'population_trends',
    'significance',
    'state_biogeography',
    'state_taxon',
    'latitude_biogeography',
]
