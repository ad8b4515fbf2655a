"""Inspect SKAB CSV sources: valid records and anomaly ratio per file."""
import argparse
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.ml.record_loader import SensorFolderLoader, load_records


def _summarize(name, df):
    total = len(df)
    anomalies = int((df["anomaly"] > 0.5).sum())
    ratio = anomalies / total if total else 0.0
    print(f"  {name}: {total} records, {anomalies} anomalies ({ratio:.2%})")
    return total, anomalies


def main():
    parser = argparse.ArgumentParser(description="Summarize SKAB CSV sources")
    parser.add_argument("--baseline", type=str, help="Anomaly-free CSV file")
    parser.add_argument("--folder", dest="folders", action="append", default=[],
                        help="Folder of run CSV files; repeat for several")
    args = parser.parse_args()

    grand_total = 0
    grand_anomalies = 0

    if args.baseline:
        print(f"Baseline: {args.baseline}")
        total, anomalies = _summarize(Path(args.baseline).name, load_records(args.baseline))
        grand_total += total
        grand_anomalies += anomalies

    for folder in args.folders:
        loader = SensorFolderLoader(folder)
        print(f"\nFolder: {folder} ({loader.get_file_count()} CSV files)")
        for csv_file in loader.list_files():
            total, anomalies = _summarize(csv_file.name, load_records(csv_file))
            grand_total += total
            grand_anomalies += anomalies

    ratio = grand_anomalies / grand_total if grand_total else 0.0
    print(f"\nTotal: {grand_total} records, {grand_anomalies} anomalies ({ratio:.2%})")


if __name__ == "__main__":
    main()
