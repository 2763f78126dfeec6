"""Fathom - deep research from the command line.

Recursively searches, reads and extracts learnings about a topic, then
writes a cited Markdown report.
"""

import argparse
import asyncio
import sys
import time
from pathlib import Path

from fathom.agents.orchestrator import ResearchOrchestrator
from fathom.config import settings
from fathom.llm_client import LLMClient
from fathom.models.research import ResearchConfig
from fathom.services.event_sink import ConsoleEventSink, FanoutEventSink, JsonlEventSink
from fathom.services.logger import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fathom",
        description="Fathom - Deep Research & Intelligence from the Command Line",
    )
    parser.add_argument("prompt", help="The research topic")
    parser.add_argument("-d", "--depth", type=int, default=settings.research_depth,
                        help="Research depth (recursion levels)")
    parser.add_argument("-b", "--breadth", type=int, default=settings.research_breadth,
                        help="Research breadth (queries per level)")
    parser.add_argument("-c", "--concurrency", type=int, default=settings.research_concurrency,
                        help="Max concurrent tasks")
    parser.add_argument("-m", "--model", default=settings.llm_model, help="LLM model to use")
    parser.add_argument("--api-key", default=settings.openai_api_key,
                        help="OpenAI API key (or 'ollama')")
    parser.add_argument("--api-endpoint", default=settings.openai_base_url,
                        help="OpenAI-compatible base URL")
    parser.add_argument("-o", "--output", help="Output file path")
    parser.add_argument("-l", "--log-file", default="research.jsonl",
                        help="Structured event log file path")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show detailed research events in console")
    parser.add_argument("--learnings-per-page", type=int, default=settings.learnings_per_page,
                        help="Max learnings to extract per page")
    parser.add_argument("--max-results", type=int, default=settings.max_results_per_query,
                        help="Max search results to process per query")
    return parser


async def run_research(args: argparse.Namespace) -> int:
    config = ResearchConfig(
        depth=args.depth,
        breadth=args.breadth,
        concurrency=args.concurrency,
        learnings_per_chunk=args.learnings_per_page,
        max_search_results_per_query=args.max_results,
    )

    sinks = [JsonlEventSink(args.log_file)]
    if args.verbose:
        sinks.append(ConsoleEventSink())

    llm = LLMClient(model=args.model, api_key=args.api_key, base_url=args.api_endpoint)
    orchestrator = ResearchOrchestrator(config, llm=llm, event_sink=FanoutEventSink(*sinks))

    print(f"Starting research on: \"{args.prompt}\"", file=sys.stderr)
    if args.verbose:
        print("Research Configuration:", file=sys.stderr)
        print(f"   Depth: {config.depth}", file=sys.stderr)
        print(f"   Breadth: {config.breadth}", file=sys.stderr)
        print(f"   Learnings/Page: {config.learnings_per_chunk}", file=sys.stderr)
        print(f"   Max Results/Query: {config.max_search_results_per_query}", file=sys.stderr)
        print(f"   Model: {args.model}", file=sys.stderr)
        print(f"   Endpoint: {args.api_endpoint}\n", file=sys.stderr)

    started = time.monotonic()
    state = await orchestrator.run(args.prompt)
    duration = time.monotonic() - started

    usage = state.token_usage
    print(f"\n[*] Research completed in {duration:.1f}s", file=sys.stderr)
    print(f"   Learnings: {len(state.learnings)}", file=sys.stderr)
    print(f"   Sources: {len(state.sources)}", file=sys.stderr)
    print(
        f"   Tokens: {usage.total} (Prompt: {usage.prompt}, Completion: {usage.completion})",
        file=sys.stderr,
    )

    print("\n[+] Writing final report...", file=sys.stderr)
    report = await orchestrator.generate_report(args.prompt)

    if args.output:
        Path(args.output).write_text(report, encoding="utf-8")
        print(f"\nReport saved to: {args.output}", file=sys.stderr)
    else:
        print("\n" + "=" * 50)
        print("FINAL REPORT")
        print("=" * 50 + "\n")
        print(report)
        print("\n" + "=" * 50)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level="DEBUG" if args.verbose else None)

    try:
        return asyncio.run(run_research(args))
    except Exception as e:
        print(f"Research failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
