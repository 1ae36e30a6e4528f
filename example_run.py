#!/usr/bin/env python3
"""
Example script demonstrating how to run the survey population-trend workflow.

This script processes one survey dataset directory and produces:
1. Per-species population trends (slope, change ratio, non-zero counts)
2. Per-species Spearman significance and direction
3. Standardized trend curves by state/biogeography, state/taxon and
   latitude band/biogeography

Output is saved as both a pickle file (dictionary) and individual CSVs.
"""

import pickle
import sys
from pathlib import Path

from survey_trends import compute_dataset_trends, save_output_tables


def process_dataset(data_dir: str = "./data", output_dir: str = "./output") -> dict:
    """
    Process a survey dataset and save results.

    Parameters
    ----------
    data_dir : str
        Directory holding counts_wide.csv, species_traits.csv and site_states.csv
    output_dir : str
        Directory to save output files

    Returns
    -------
    dict
        Dictionary containing all output tables and metadata
    """
    # Ensure output directory exists
    Path(output_dir).mkdir(exist_ok=True)

    csvs_output_dir = Path(output_dir) / "csvs"

    print(f"\n{'='*60}")
    print(f"Processing dataset: {data_dir}")
    print(f"{'='*60}\n")

    # Run the full workflow
    output = compute_dataset_trends(data_dir, verbose=True)

    # Save as pickle (dictionary)
    pkl_file = Path(output_dir) / "population_trends.pkl"
    with open(pkl_file, 'wb') as f:
        pickle.dump(output, f)
    print(f"\nPickle file saved: {pkl_file}")

    # Save result tables as CSVs for the reporting layer
    for filepath in save_output_tables(output, csvs_output_dir):
        print(f"CSV saved: {filepath}")

    # Print summary
    metadata = output['metadata']
    print(f"\n{'='*60}")
    print("Summary:")
    print(f"{'='*60}")
    print(f"  Years: {metadata['first_year']}-{metadata['last_year']} "
          f"(trend window {metadata['start_year']}-{metadata['end_year']})")
    print(f"  Sites: {metadata['n_sites']}")
    print(f"  Species: {metadata['n_species']}")
    print(f"  Species with a trend slope: {metadata['n_species_with_slope']}")
    print(f"  Species tested for significance: {metadata['n_species_tested']}")

    if not output['significance'].empty:
        print(f"\nSignificant trends by direction:")
        directions = output['significance']['direction'].replace('', 'none')
        print(directions.value_counts().to_string())

    if not output['population_trends'].empty:
        print(f"\nSample rows:")
        print(output['population_trends'].head(5).to_string())

    return output


def main():
    """Main entry point."""
    data_dir = sys.argv[1] if len(sys.argv) > 1 else './data'
    output_dir = sys.argv[2] if len(sys.argv) > 2 else './output'

    if not Path(data_dir).is_dir():
        print(f"Error: data directory '{data_dir}' not found.")
        sys.exit(1)

    process_dataset(data_dir, output_dir)

    print(f"\n{'='*60}")
    print("Done!")
    print(f"{'='*60}")


if __name__ == "__main__":
    main()
