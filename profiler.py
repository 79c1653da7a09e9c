import argparse
import json
import os
import sys
from dataclasses import asdict
from datetime import datetime

import data_processor as dp
import chart_math as cm
import recommender as rec

def setup_args(argv=None):
    parser = argparse.ArgumentParser(description="Profiler: batch dataset profiling")
    parser.add_argument("--input", required=True, help="Path to input file (CSV/TSV/Excel/JSON) or folder")
    parser.add_argument("--output", default="profile.json", help="Output path for the JSON profile")
    parser.add_argument("--sheet", default=None, help="Excel sheet name (defaults to the first sheet)")
    parser.add_argument("--sample-rows", type=int, default=dp.SAMPLE_ROWS, help="Rows sampled for typing and correlations")
    parser.add_argument("--fence", type=float, default=None, help="IQR multiplier for box-plot outliers")
    return parser.parse_args(argv)

def list_inputs(path):
    if os.path.isfile(path): return [path]
    return sorted(
        os.path.join(path, f) for f in os.listdir(path)
        if dp.file_extension(f) in dp.SUPPORTED_EXTENSIONS
    )

def profile_file(fpath, sheet=None, sample_rows=dp.SAMPLE_ROWS, fence=None):
    with open(fpath, "rb") as fh:
        file_bytes = fh.read()
    fname = os.path.basename(fpath)
    processed = dp.process_file(file_bytes, fname, sheet)
    df = processed.data
    types = dp.infer_column_types(df, sample_rows)

    distributions = {}
    for col in dp.numeric_columns(types):
        distributions[col] = cm.box_stats(dp.to_numeric(df[col]).dropna().tolist(), fence=fence)

    characteristics = rec.analyze_data_characteristics(df, processed.columns, types, sample_rows)
    recommendations = rec.generate_recommendations(characteristics)

    return {
        "name": os.path.splitext(fname)[0],
        "filename": fname,
        "rows": len(df),
        "columns": processed.columns,
        "column_types": types,
        "domain": processed.domain,
        "confidence": processed.confidence,
        "detected_features": processed.detected_features,
        "data_quality": processed.data_quality,
        "distributions": distributions,
        "correlations": characteristics.correlations,
        "trends": characteristics.trends,
        "recommendations": [asdict(r) for r in recommendations],
        "profiled_at": datetime.now().isoformat(timespec="seconds"),
    }

def main(argv=None):
    args = setup_args(argv)

    print(f"--- PROFILER STARTED ---")
    print(f"Input: {args.input}")

    files = list_inputs(args.input)
    if not files:
        print("No supported files found.", file=sys.stderr)
        return 1

    profiles = []
    failed = 0
    for fpath in files:
        try:
            profile = profile_file(fpath, args.sheet, args.sample_rows, args.fence)
        except (dp.ReaderError, dp.ValidationError) as e:
            failed += 1
            print(f"   Skipped {fpath}: {e}", file=sys.stderr)
            continue
        profiles.append(profile)
        print(f"   {profile['filename']}: {profile['rows']} rows | domain={profile['domain']} ({profile['confidence']}%) | quality={profile['data_quality']}%")

    with open(args.output, "w", encoding="utf-8") as fh:
        json.dump({"profiles": profiles}, fh, indent=2, default=str)

    print(f"✅ Profile saved to: {args.output}")
    print(f"   Files profiled: {len(profiles)} | Skipped: {failed}")
    return 0 if profiles else 1

if __name__ == "__main__":
    sys.exit(main())
