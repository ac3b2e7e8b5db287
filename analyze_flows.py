#!/usr/bin/env python3
"""
Flow Analyzer - Batch Ingestion CLI
"""

import json
import logging
import sys

from flow_analyzer import FlowAnalyzer, AnalyzerConfig
from flow_analyzer.processors import IngestFileProcessor, ParallelIngestor
from flow_analyzer.web import prepare_analytics


def main():
    import argparse
    parser = argparse.ArgumentParser(
        description='Ingest contract execution traces and report failure hotspots.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python analyze_flows.py traces.json
  python analyze_flows.py traces.json --workers 8 --hotspots 20
  python analyze_flows.py traces.json -o report.json
        """
    )
    parser.add_argument('input_file', help='Path to a JSON array of ingest payloads')
    parser.add_argument('-o', '--output', dest='output_file', help='Write a JSON report to this file')
    parser.add_argument('--workers', type=int, default=None, help='Number of ingestion threads (default: CPU count)')
    parser.add_argument('--hotspots', type=int, default=10, help='Number of hotspots to report')
    parser.add_argument('--max-steps', type=int, default=10000, help='Reject flows with more steps than this')
    parser.add_argument('--log-level', default='WARNING', help='Logging level (DEBUG, INFO, WARNING, ERROR)')
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    analyzer = FlowAnalyzer(config=AnalyzerConfig(max_steps_per_record=args.max_steps))

    try:
        print(f"\nConfiguration:")
        print(f"  Input file: {args.input_file}")
        print(f"  Max steps per flow: {args.max_steps}")
        print(f"  Workers: {args.workers or 'auto'}\n")

        payloads = IngestFileProcessor.process_file(args.input_file)
        ingestor = ParallelIngestor(analyzer, num_workers=args.workers)
        ingested, rejected = ingestor.ingest_all(payloads)

        for index, message in rejected:
            print(f"  Rejected payload #{index}: {message}")

        metrics = analyzer.compute_analytics()
        hotspots = analyzer.get_hotspots(args.hotspots)

        print(f"\nIngested {ingested} transactions ({len(rejected)} rejected)")
        print(f"Success rate: {metrics.success_rate:.1%} "
              f"({metrics.success_count} success, {metrics.revert_count} revert)")
        print(f"Average call depth: {metrics.avg_call_depth:.2f}")
        print(f"\nTop {len(hotspots)} hotspots:")
        for stats in hotspots:
            print(f"  {stats.function_name:<24} {stats.contract_address or '-':<44} "
                  f"{stats.revert_count}/{stats.call_count} ({stats.revert_rate:.0%})")

        if args.output_file:
            report = {
                'analytics': prepare_analytics(metrics, analyzer.compute_coverage()),
                'hotspots': [s.to_dict() for s in hotspots],
                'rejected': [{'index': i, 'message': m} for i, m in rejected],
            }
            with open(args.output_file, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2)
            print(f"\nReport written to {args.output_file}")

        print(f"\n✓ Analysis complete!")
    except FileNotFoundError:
        print(f"Error: File '{args.input_file}' not found.")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
