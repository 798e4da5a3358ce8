"""memorai command line interface.

``memorai serve`` runs the API; every other command talks to a running
server over HTTP.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import httpx

from memorai import __version__
from memorai.core.config import settings


class CommandError(Exception):
    """A command failed in a way that should be reported to the user."""


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


def _request(client: httpx.Client, method: str, path: str, **kwargs: Any) -> httpx.Response:
    try:
        response = client.request(method, path, **kwargs)
    except httpx.TransportError as e:
        raise CommandError(f"Could not reach memorai at {client.base_url} ({e}). Is `memorai serve` running?") from e
    if response.is_error:
        raise CommandError(_error_message(response))
    return response


def _filter_params(args: argparse.Namespace) -> dict[str, Any]:
    return {k: v for k, v in (("tag", args.tag), ("source", args.source)) if v is not None}


def _print_memory_line(prefix: str, memory: dict[str, Any]) -> None:
    print(f"{prefix}{memory['text']}")
    if memory.get("tags"):
        print(f"   Tags: {', '.join(memory['tags'])}")


def load_import_file(path: Path) -> list[dict[str, Any]]:
    """Read memories from a JSON array or a JSON-lines file.

    Entries may be objects (``text``, ``tags``, ``source``) or bare strings.
    """
    content = path.read_text(encoding="utf-8").strip()
    if not content:
        return []
    if content.startswith("["):
        entries = json.loads(content)
    else:
        entries = [json.loads(line) for line in content.splitlines() if line.strip()]
    return [{"text": entry} if isinstance(entry, str) else entry for entry in entries]


def cmd_add(client: httpx.Client, args: argparse.Namespace) -> None:
    body: dict[str, Any] = {"text": args.text, "tags": args.tags or []}
    if args.source:
        body["source"] = args.source

    print("Adding memory...")
    memory = _request(client, "POST", "/v1/memories", json=body).json()
    print(f"✅ Memory stored (id: {memory['id']})")
    print(f"   Text: {memory['text']}")
    if memory["tags"]:
        print(f"   Tags: {', '.join(memory['tags'])}")
    print(f"   Source: {memory['source']}")


def cmd_search(client: httpx.Client, args: argparse.Namespace) -> None:
    params = {"q": args.query, "limit": args.limit, **_filter_params(args)}

    print(f'Searching for: "{args.query}"')
    results = _request(client, "GET", "/v1/search", params=params).json()
    if not results:
        print("No memories found.")
        return

    print(f"\n🔍 Top {len(results)} results:\n")
    for i, result in enumerate(results, start=1):
        _print_memory_line(f"{i}. [score: {result['score']:.4f}] ", result["memory"])
        print()


def cmd_list(client: httpx.Client, args: argparse.Namespace) -> None:
    params = {"page": args.page, **_filter_params(args)}
    if args.per_page is not None:
        params["per_page"] = args.per_page

    page = _request(client, "GET", "/v1/memories", params=params).json()
    if not page["items"]:
        print(f"No memories on page {page['page']} ({page['total']} total).")
        return

    print(f"📚 Page {page['page']} ({len(page['items'])} of {page['total']} memories)\n")
    for memory in page["items"]:
        _print_memory_line(f"[{memory['id']}] ", memory)


def cmd_delete(client: httpx.Client, args: argparse.Namespace) -> None:
    _request(client, "DELETE", f"/v1/memories/{args.id}")
    print(f"🗑️  Memory {args.id} deleted")


def cmd_import(client: httpx.Client, args: argparse.Namespace) -> None:
    try:
        memories = load_import_file(args.file)
    except (OSError, json.JSONDecodeError) as e:
        raise CommandError(f"Cannot read {args.file}: {e}") from e

    print(f"Importing {len(memories)} memories from {args.file}...")
    outcome = _request(client, "POST", "/v1/memories/bulk", json={"memories": memories}).json()
    print(f"✅ {outcome['created']} created, {outcome['failed_count']} failed")
    for failure in outcome["failed"]:
        print(f"   Item {failure['index']}: {failure['reason']}")


def cmd_stats(client: httpx.Client, args: argparse.Namespace) -> None:
    stats = _request(client, "GET", "/v1/stats").json()
    print("📊 memorai stats\n")
    print(f"Total memories: {stats['total_memories']}")

    if stats["tags"]:
        print("\nTop tags:")
        for tag in stats["tags"][:10]:
            print(f"  {tag['tag']} ({tag['count']})")

    if stats["sources"]:
        print("\nTop sources:")
        for source in stats["sources"][:10]:
            print(f"  {source['source']} ({source['count']})")


def cmd_profile(client: httpx.Client, args: argparse.Namespace) -> None:
    print("Generating profile from stored memories...\n")
    profile = _request(client, "GET", "/v1/profile", params=_filter_params(args)).json()
    print(f"👤 Profile (based on {profile['source_count']} memories):\n")
    print(profile["text"])


def cmd_serve(args: argparse.Namespace) -> None:
    from memorai.main import run

    run(host=args.host, port=args.port, reload=args.reload)


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tag", help="Only memories carrying this tag")
    parser.add_argument("--source", help="Only memories from this source")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memorai",
        description="Local-first AI memory system with semantic search",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--url",
        default=settings.api_url,
        help="Base URL of the memorai server (default: %(default)s)",
    )
    parser.add_argument("--timeout", type=float, default=180.0, help="HTTP timeout in seconds")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Start the memorai API server")
    serve.add_argument("--host", default=None, help=f"Bind address (default: {settings.host})")
    serve.add_argument("--port", type=int, default=None, help=f"Port (default: {settings.port})")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    add = commands.add_parser("add", help="Add a memory")
    add.add_argument("text", help="The text to remember")
    add.add_argument(
        "-t",
        "--tags",
        type=lambda s: [t.strip() for t in s.split(",") if t.strip()],
        help="Comma-separated tags",
    )
    add.add_argument("-s", "--source", help="Source of the memory")
    add.set_defaults(handler=cmd_add)

    search = commands.add_parser("search", help="Search memories semantically")
    search.add_argument("query", help="Search query")
    search.add_argument("-l", "--limit", type=int, default=5, help="Max results (default: %(default)s)")
    _add_filter_arguments(search)
    search.set_defaults(handler=cmd_search)

    list_cmd = commands.add_parser("list", help="List memories, newest first")
    list_cmd.add_argument("-p", "--page", type=int, default=1, help="Page number (default: %(default)s)")
    list_cmd.add_argument("-n", "--per-page", type=int, default=None, help="Memories per page")
    _add_filter_arguments(list_cmd)
    list_cmd.set_defaults(handler=cmd_list)

    delete = commands.add_parser("delete", help="Delete a memory by id")
    delete.add_argument("id", help="Memory id")
    delete.set_defaults(handler=cmd_delete)

    import_cmd = commands.add_parser("import", help="Bulk import memories from a JSON or JSON-lines file")
    import_cmd.add_argument("file", type=Path, help="JSON array or JSON-lines file")
    import_cmd.set_defaults(handler=cmd_import)

    stats = commands.add_parser("stats", help="Show memory statistics")
    stats.set_defaults(handler=cmd_stats)

    profile = commands.add_parser("profile", help="Generate a user profile from stored memories")
    _add_filter_arguments(profile)
    profile.set_defaults(handler=cmd_profile)

    return parser


def main(argv: list[str] | None = None, client: httpx.Client | None = None) -> int:
    """Entry point for the ``memorai`` command. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
        return 0

    http = client or httpx.Client(base_url=args.url, timeout=args.timeout)
    try:
        args.handler(http, args)
    except CommandError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    finally:
        if client is None:
            http.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
