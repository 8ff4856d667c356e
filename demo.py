"""
Context Engine - Demo Script

This script demonstrates the complete workflow through the service surface:
1. Ingest documents (text, markdown or PDF files)
2. Ask questions
3. Get answers grounded in the ingested content

BEFORE RUNNING:
1. Create a .env file (or export the variables)
2. Set OPENAI_API_KEY, or pass --api-key once to store it

RUN:
    python demo.py notes.txt handbook.pdf --ask "What is the refund policy?"
    python demo.py notes.txt              # interactive mode
"""

import argparse
import sys
from typing import List, Optional

from config.log_config import configure_logging
from config.settings import get_settings
from context_agent.chunking import DocumentLoader
from context_agent.rag_pipeline import create_rag_system
from context_agent.service import AgentService, ErrorResponse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ingest documents and chat with their context.")
    parser.add_argument("files", nargs="*", help="Files to ingest (.txt, .md, .pdf)")
    parser.add_argument("--ask", action="append", default=[], help="Question to answer (repeatable)")
    parser.add_argument("--api-key", help="Store this API key before doing anything else")
    parser.add_argument("--reset", action="store_true", help="Clear the vector store first")
    return parser


def ingest_files(service: AgentService, files: List[str]) -> bool:
    ok = True
    for path in files:
        try:
            text, metadata = DocumentLoader.load(path)
        except (OSError, ValueError) as exc:
            print(f"✗ {path}: {exc}")
            ok = False
            continue

        response = service.ingest(text, source=metadata["source"])
        if isinstance(response, ErrorResponse):
            print(f"✗ {path}: {response.error}")
            ok = False
        else:
            print(f"✓ {path}: {response.entries} chunks")
    return ok


def ask(service: AgentService, question: str) -> bool:
    print(f"Q: {question}")
    response = service.answer(question)
    if isinstance(response, ErrorResponse):
        print(f"Error: {response.error}")
        return False
    print(f"A: {response.text}")
    print("-" * 60)
    return True


def interactive(service: AgentService):
    print("=" * 60)
    print("Interactive Mode - Ask your own questions!")
    print("Type 'quit' to exit")
    print("=" * 60)
    print()

    while True:
        try:
            question = input("Your question: ").strip()
        except EOFError:
            break

        if question.lower() in ['quit', 'exit', 'q']:
            print("Goodbye!")
            break

        if not question:
            continue

        ask(service, question)


def main(argv: Optional[List[str]] = None, service: Optional[AgentService] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    if service is None:
        service = AgentService(create_rag_system(get_settings()))

    if args.api_key:
        service.set_credential(args.api_key)
    if args.reset:
        service.pipeline.reset()

    ok = ingest_files(service, args.files)

    stats = service.pipeline.get_stats()
    print(f"Store holds {stats['total_chunks']} of {stats['max_entries']} chunks\n")

    if args.ask:
        for question in args.ask:
            ok = ask(service, question) and ok
    else:
        interactive(service)

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
