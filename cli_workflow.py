#!/usr/bin/env python3
"""
CLI workflow runner for the document-to-explanation pipeline.

Provides command-line interface for batch processing problem sets and
curating the golden explanation cache.
"""
import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import settings
from core.exceptions import PipelineError
from core.models import CachedExplanation, ExplanationMode, InputFile
from data.database import DatabaseManager
from data.repositories import FailureLogRepository, GoldenExplanationRepository
from services.cache_store import compute_cache_key
from services.cancellation import CancellationToken
from services.pipeline import build_pipeline
from services.progress import CallbackProgressSink


def write_outputs(explanations, output_dir: str):
    """Write explanations.json plus one Markdown file and crop per problem."""
    os.makedirs(output_dir, exist_ok=True)

    with open(os.path.join(output_dir, 'explanations.json'), 'w', encoding='utf-8') as f:
        json.dump([e.to_dict() for e in explanations], f, ensure_ascii=False, indent=2)

    for explanation in explanations:
        stem = f"problem_{explanation.problem_number:04d}"
        with open(os.path.join(output_dir, f"{stem}.md"), 'w', encoding='utf-8') as f:
            f.write(f"# Problem {explanation.problem_number} (page {explanation.page_number})\n\n")
            if explanation.original_problem_text:
                f.write(f"{explanation.original_problem_text}\n\n---\n\n")
            f.write(explanation.markdown)
            f.write("\n")
        if explanation.problem_image:
            with open(os.path.join(output_dir, f"{stem}.png"), 'wb') as f:
                f.write(explanation.problem_image)


async def run_cli(file_paths, mode: str, use_guidelines: bool, output_dir: str):
    """Run the pipeline over local files."""
    print("=" * 60)
    print(f"Processing: {', '.join(file_paths)}")
    print(f"Mode: {mode}  Guidelines: {'on' if use_guidelines else 'off'}")
    print("=" * 60)

    files = []
    for path in file_paths:
        if not os.path.exists(path):
            print(f"❌ Error: File not found: {path}")
            return None
        with open(path, 'rb') as f:
            files.append(InputFile(name=os.path.basename(path), data=f.read()))

    db_manager = DatabaseManager(settings.database_url)
    db_manager.create_tables()
    pipeline = None

    cancel = CancellationToken()
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel.cancel)
    except NotImplementedError:
        pass  # Windows: Ctrl+C interrupts instead of cancelling

    def on_update(explanation):
        if explanation.is_terminal:
            state = "❌" if explanation.is_error else ("★" if explanation.is_golden else "✓")
            print(f"  {state} Problem {explanation.problem_number} (page {explanation.page_number})")

    progress = CallbackProgressSink(on_status=print, on_update=on_update)

    try:
        pipeline = build_pipeline(settings, db_manager)
        explanations = await pipeline.run(
            files, ExplanationMode(mode), use_guidelines, progress, cancel
        )
    except PipelineError as e:
        print(f"❌ Error: {e}")
        return None
    finally:
        if pipeline is not None:
            await pipeline.close()
        db_manager.dispose()

    write_outputs(explanations, output_dir)

    failed = sum(1 for e in explanations if e.is_error)
    golden = sum(1 for e in explanations if e.is_golden)
    print("\n" + "=" * 60)
    print(f"✓ Complete! {len(explanations)} explanations ({golden} from cache, {failed} failed)")
    print(f"  Output: {output_dir}")
    print("=" * 60)

    return explanations


def golden_add_cli(image_path: str, markdown_path: str, concepts=None, difficulty=None):
    """Store a curated explanation for a cropped problem image."""
    with open(image_path, 'rb') as f:
        image = f.read()
    with open(markdown_path, 'r', encoding='utf-8') as f:
        markdown = f.read()

    key = compute_cache_key(image)
    db_manager = DatabaseManager(settings.database_url)
    db_manager.create_tables()
    with db_manager.session() as session:
        GoldenExplanationRepository(session).put(key, CachedExplanation(
            markdown=markdown,
            core_concepts=concepts or None,
            difficulty=difficulty
        ))

    print(f"✓ Golden explanation stored: {key}")


def list_failures_cli(limit: int = 20):
    """List recent generation failures."""
    db_manager = DatabaseManager(settings.database_url)
    db_manager.create_tables()
    with db_manager.session() as session:
        entries = FailureLogRepository(session).list_recent(limit=limit)

        if not entries:
            print("No failures logged.")
            return

        print(f"\nFound {len(entries)} failures:")
        print("-" * 80)
        print(f"{'Created':<17} {'Page':<5} {'No.':<5} {'Mode':<8} {'Reason'}")
        print("-" * 80)

        for entry in entries:
            created = entry.created_at.strftime("%Y-%m-%d %H:%M")
            reason = (entry.reason or "").replace("\n", " ")
            if len(reason) > 40:
                reason = reason[:40] + "..."
            print(f"{created:<17} {entry.page_number or '-':<5} {entry.problem_number or '-':<5} "
                  f"{entry.mode or '-':<8} {reason}")


def main():
    parser = argparse.ArgumentParser(
        description='Problem set explanation CLI workflow'
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Run command
    run_parser = subparsers.add_parser('run', help='Detect problems and generate explanations')
    run_parser.add_argument('files', nargs='+', help='PDF or image files, in order')
    run_parser.add_argument('--mode', type=str, default='default',
                            choices=[m.value for m in ExplanationMode], help='Explanation mode')
    run_parser.add_argument('--guidelines', action='store_true', help='Apply writing guidelines')
    run_parser.add_argument('-o', '--output', type=str, default='explanations_output',
                            help='Output directory')

    # Golden add command
    golden_parser = subparsers.add_parser('golden-add', help='Store a curated explanation')
    golden_parser.add_argument('image', type=str, help='Cropped problem image (problem_NNNN.png from a run)')
    golden_parser.add_argument('markdown', type=str, help='Markdown file with the explanation')
    golden_parser.add_argument('--concept', action='append', dest='concepts', help='Core concept (repeatable)')
    golden_parser.add_argument('--difficulty', type=int, choices=range(1, 6), help='Difficulty 1-5')

    # Failures command
    failures_parser = subparsers.add_parser('failures', help='List recent generation failures')
    failures_parser.add_argument('--limit', type=int, default=20, help='Number of entries')

    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if args.command == 'run':
        asyncio.run(run_cli(
            file_paths=args.files,
            mode=args.mode,
            use_guidelines=args.guidelines,
            output_dir=args.output
        ))
    elif args.command == 'golden-add':
        golden_add_cli(args.image, args.markdown, args.concepts, args.difficulty)
    elif args.command == 'failures':
        list_failures_cli(args.limit)
    else:
        parser.print_help()


if __name__ == '__main__':
    main()
