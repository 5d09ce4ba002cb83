import argparse
import asyncio
import logging
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.app.config import get_settings
from src.services.errors import RateLimitedError
from src.services.ids import detect_platform
from src.services.ingest import ingest


async def run_ingest(url: str, ytdlp_enabled: bool) -> None:
    print("\n===", url)
    detected = detect_platform(url)
    print("platform:", detected.platform if detected else "web")

    settings = get_settings().model_copy(update={"YTDLP_FALLBACK_ENABLED": ytdlp_enabled})
    try:
        recipe = await ingest(url, settings=settings)
    except RateLimitedError as error:
        print("rate limited:", error)
        return

    if recipe is None:
        print("no recipe found")
        return

    print("name:", recipe.name)
    print("source:", recipe.source)
    print("cooking_time:", recipe.cooking_time)
    print("servings:", recipe.servings)
    print("image_url:", recipe.image_url)
    print("ingredients:", len(recipe.ingredients))
    for ingredient in recipe.ingredients[:5]:
        print("  -", ingredient.quantity or "", ingredient.unit or "", ingredient.name)
    print("instructions_preview:", (recipe.instructions or "")[:120])


def main() -> None:
    parser = argparse.ArgumentParser(description="Quick ingest smoke test")
    parser.add_argument("url", nargs="*", default=[
        "https://www.allrecipes.com/recipe/16354/easy-meatloaf/",
        "https://www.youtube.com/watch?v=_nJw6nnQms8",
        "https://www.instagram.com/p/C4stLiBL4SS/",
    ])
    parser.add_argument("--no-ytdlp", action="store_true", help="Disable the yt-dlp fallback strategy")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    for url in args.url:
        asyncio.run(run_ingest(url, ytdlp_enabled=not args.no_ytdlp))


if __name__ == "__main__":
    main()
