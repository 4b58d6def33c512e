"""
Command-line search over the app catalog.

    app-search "note taking with sync" [top_k] [--hashing]
"""
import logging
import sys

from app_search import config
from app_search.embedder import HashingEmbeddingProvider, OnnxEmbeddingProvider
from app_search.errors import SearchError
from app_search.search_engine import SearchEngine


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    use_hashing = "--hashing" in args
    args = [a for a in args if a != "--hashing"]
    if not args:
        print('Usage: app-search "query text" [top_k] [--hashing]')
        return 0

    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    query = args[0]
    k = int(args[1]) if len(args) > 1 else config.K_DEFAULT

    provider = HashingEmbeddingProvider() if use_hashing else OnnxEmbeddingProvider()
    try:
        engine = SearchEngine.from_csv(config.CATALOG_PATH, provider, show_progress=True)
    except (SearchError, OSError) as e:
        print(f"❌  could not build the catalog index: {e}", file=sys.stderr)
        return 1

    response = engine.search(query, k)
    if response.error:
        print(f"❌  {response.error}", file=sys.stderr)
        return 1
    for r in response.results:
        print(f"{r.score: .4f}  {r.item.id}  {r.item.name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
