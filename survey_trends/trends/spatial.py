"""
Latitude banding of survey sites.
"""

import numpy as np
import pandas as pd

from ..constants import (
    SITE_COL,
    LAT_COL,
    LAT_BIN_LOWER,
    LAT_BIN_UPPER,
    LAT_BIN_WIDTH,
    LAT_BIN_COL,
)


def latitude_bin_edges(
    lower: float = LAT_BIN_LOWER,
    upper: float = LAT_BIN_UPPER,
    width: float = LAT_BIN_WIDTH
) -> np.ndarray:
    """
    Bin edges from lower to upper (inclusive) in steps of width.

    Raises
    ------
    ValueError
        If the range is empty or not a whole number of bins
    """
    if width <= 0 or upper <= lower:
        raise ValueError(f"Invalid latitude bin range {lower}..{upper} with width {width}")
    n_bins = (upper - lower) / width
    if not np.isclose(n_bins, round(n_bins)):
        raise ValueError(f"Latitude range {lower}..{upper} is not a multiple of {width}")
    return lower + width * np.arange(int(round(n_bins)) + 1)


def assign_latitude_bins(
    sites: pd.DataFrame,
    lower: float = LAT_BIN_LOWER,
    upper: float = LAT_BIN_UPPER,
    width: float = LAT_BIN_WIDTH
) -> pd.DataFrame:
    """
    Assign each site to a latitude band.

    The site's latitude is offset by half a bin width and binned against the
    edges offset by the same amount. Intervals are closed on the right, so a
    site on a boundary falls into the lower band; the lowest edge is
    included. Each band is identified by its lower latitude edge.

    Parameters
    ----------
    sites : pd.DataFrame
        Distinct (site_id, latitude) pairs, latitude in rounded degrees
    lower, upper, width : float
        Band range and width in degrees

    Returns
    -------
    pd.DataFrame
        site_id, latitude and 'lat_bin' (lower edge of the band, NA when the
        latitude is outside the configured range)
    """
    edges = latitude_bin_edges(lower, upper, width)
    half = width / 2.0

    result = sites[[SITE_COL, LAT_COL]].drop_duplicates().reset_index(drop=True)
    shifted = result[LAT_COL].astype(float) + half
    codes = pd.cut(
        shifted,
        bins=edges + half,
        right=True,
        include_lowest=True,
        labels=False,
    )

    result[LAT_BIN_COL] = np.where(codes.notna(), lower + width * codes.fillna(0), np.nan)

    return result.sort_values(SITE_COL).reset_index(drop=True)
