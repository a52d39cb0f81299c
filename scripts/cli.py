"""
CLI to analyze a transcript JSON file -> analysis JSON.
"""
from __future__ import annotations
import argparse, json, logging, os
from clarity.config import Settings
from clarity.pipeline import analyze_transcript
from clarity.rulepacks import RulepackRegistry

def main(argv=None):
    p = argparse.ArgumentParser()
    p.add_argument("--transcript", required=True, help="Path to transcript JSON")
    p.add_argument("--language", default=None, help="Rulepack language (defaults to transcript metadata)")
    p.add_argument("--out", default="output/analysis.json", help="Path to output JSON")
    args = p.parse_args(argv)

    settings = Settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    with open(args.transcript, encoding="utf-8") as f:
        data = json.load(f)

    registry = RulepackRegistry(settings.RULES_DIR)
    result = analyze_transcript(data, language=args.language, registry=registry, settings=settings)
    payload = result.model_dump(mode="json")
    print(json.dumps(payload, indent=2, ensure_ascii=False))

    out_dir = os.path.dirname(args.out)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    print(f"Analysis written to {args.out}")

if __name__ == "__main__":
    main()
