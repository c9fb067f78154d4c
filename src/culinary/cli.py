#!/usr/bin/env python3
"""Terminal runner for Culinary Time Machine.

Generate a historical recipe from ingredients, or browse the saved archive,
without any other user interface.

Usage:
    culinary generate flour sugar eggs
    culinary generate --save --image-out sponge.png flour sugar
    culinary generate --debug flour sugar      # Show full pipeline state as JSON
    culinary list                              # Saved recipes
    culinary show 1718000000000                # Render a saved recipe
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from culinary.app import CulinaryTimeMachine
from culinary.models.models import GeneratedImage, PipelinePhase, RecipeDraft, StatusKind, StatusMessage
from culinary.utils.config import config
from culinary.utils.logger import logger

console = Console()

STATUS_STYLES = {
    StatusKind.INFO: "cyan",
    StatusKind.ERROR: "red",
    StatusKind.SUCCESS: "green",
}


def recipe_to_markdown(recipe: RecipeDraft, has_image: bool = False) -> str:
    """Render a recipe as Markdown."""
    lines = [
        f"# {recipe.recipe_name}",
        f"*{recipe.era}*",
        "",
        recipe.description,
        "",
        f"**Fun Fact:** {recipe.fun_fact}",
        "",
        "## Ingredients",
    ]
    lines.extend(f"- {item}" for item in recipe.ingredients)
    lines.extend(["", "## Instructions"])
    lines.extend(f"{number}. {step}" for number, step in enumerate(recipe.instructions, start=1))
    if not has_image:
        lines.extend(["", "_Image not available for this recipe._"])
    return "\n".join(lines)


def print_status(message: Optional[StatusMessage]) -> None:
    if message is None:
        return
    style = STATUS_STYLES.get(message.kind, "white")
    console.print(f"[{style}]{message.text}[/{style}]")


def write_image(image: Optional[GeneratedImage], image_out: Optional[str]) -> None:
    if not image_out:
        return
    if image is None:
        console.print("[yellow]No image to write[/yellow]")
        return
    path = Path(image_out)
    path.write_bytes(image.to_bytes())
    console.print(f"[dim]Image written to {path} ({image.mime_type})[/dim]")


def run_generate(app: CulinaryTimeMachine, ingredients: list[str], save: bool, debug: bool, image_out: Optional[str]) -> int:
    """Add ingredients, run the pipeline and render the result."""
    for text in ingredients:
        if app.add(text) is None and text.strip():
            print_status(app.status)

    if not app.ingredients:
        console.print("[red]Please add at least one ingredient to generate a recipe.[/red]")
        return 1

    logger.info(f"Ingredients: {', '.join(app.ingredients)}")
    with console.status("Unearthing a forgotten recipe..."):
        state = asyncio.run(app.generate())

    if debug:
        console.print("[bold cyan]Debug Mode: Pipeline State[/bold cyan]")
        console.print_json(data=state.model_dump(mode="json", by_alias=True))

    if state.phase != PipelinePhase.READY or state.recipe is None:
        print_status(app.status)
        return 1

    console.print(Markdown(recipe_to_markdown(state.recipe, has_image=state.image is not None)))
    print_status(app.status)
    write_image(state.image, image_out)

    if save:
        saved = app.save()
        print_status(app.status)
        if saved is not None:
            console.print(f"[dim]Saved as {saved.id}[/dim]")
    return 0


def run_list(app: CulinaryTimeMachine) -> int:
    if not app.saved_recipes:
        console.print("[italic]You haven't saved any recipes yet.[/italic]")
        return 0

    table = Table(title="Your Saved Recipes")
    table.add_column("ID", style="dim")
    table.add_column("Recipe", style="bold")
    table.add_column("Era", style="italic")
    table.add_column("Image")
    for recipe in app.saved_recipes:
        table.add_row(str(recipe.id), recipe.recipe_name, recipe.era, "yes" if recipe.image_url else "no")
    console.print(table)
    return 0


def run_show(app: CulinaryTimeMachine, recipe_id: int, image_out: Optional[str]) -> int:
    saved = app.select(recipe_id)
    if saved is None:
        print_status(app.status)
        return 1
    console.print(Markdown(recipe_to_markdown(saved.draft, has_image=saved.image_url is not None)))
    write_image(saved.image, image_out)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="culinary", description="Discover a recipe from another era.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a historical recipe from ingredients")
    generate.add_argument("ingredients", nargs="+", help="Ingredients you have")
    generate.add_argument("--save", action="store_true", help="Save the generated recipe")
    generate.add_argument("--debug", action="store_true", help="Print the full pipeline state as JSON")
    generate.add_argument("--image-out", metavar="PATH", help="Write the generated image to PATH")

    subparsers.add_parser("list", help="List saved recipes")

    show = subparsers.add_parser("show", help="Show a saved recipe")
    show.add_argument("recipe_id", type=int, help="Saved recipe id")
    show.add_argument("--image-out", metavar="PATH", help="Write the saved image to PATH")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        app = CulinaryTimeMachine.from_config(config)

        if args.command == "generate":
            if not config.GEMINI_API_KEY:
                console.print("[red]✗ GEMINI_API_KEY is not set (environment or .env)[/red]")
                return 1
            return run_generate(app, args.ingredients, args.save, args.debug, args.image_out)
        if args.command == "list":
            return run_list(app)
        return run_show(app, args.recipe_id, args.image_out)

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return 0
    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
