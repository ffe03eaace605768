"""omnimemory CLI."""

from __future__ import annotations

import asyncio
from collections import Counter
from pathlib import Path

import click

from omnimemory.config import Config
from omnimemory.ingest import load_chunks, load_interactions, save_chunks
from omnimemory.llm import create_llm
from omnimemory.logging_config import setup_logging
from omnimemory.memory.builder import HierarchicalMemoryBuilder
from omnimemory.memory.cards import EntityCardBuilder
from omnimemory.report import SemanticCompressionReporter
from omnimemory.retrieval.context import make_question_prompt, render_context_tree
from omnimemory.retrieval.multi_stage import MultiStageRetriever
from omnimemory.storage.chunk_cache import FileChunkCache
from omnimemory.types import EntityCard


def _get_config(ctx: click.Context) -> Config:
    return ctx.obj["config"]


@click.group()
@click.option("--data-dir", envvar="OMNIMEMORY_DATA_DIR", default=None, help="Data directory (chunk cache)")
@click.option("--provider", default=None, help="LLM provider: openai | hash")
@click.option("--log-level", default=None, help="Logging level")
@click.pass_context
def main(ctx: click.Context, data_dir: str | None, provider: str | None, log_level: str | None) -> None:
    """omnimemory: hierarchical memory over email, chat and messaging."""
    config = Config()
    if data_dir:
        config.data_dir = Path(data_dir)
    if provider:
        config.llm.provider = provider
    if log_level:
        config.log_level = log_level
    setup_logging(config)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.argument("interactions", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", "-o", default="chunks.json", help="Where to write built chunks")
@click.option("--chunk-size", default=None, type=int, help="Interactions per level-0 chunk")
@click.option("--group-size", default=None, type=int, help="Chunks per higher-level chunk")
@click.option("--no-cache", is_flag=True, help="Skip the on-disk chunk cache")
@click.pass_context
def build(ctx: click.Context, interactions: str, out: str, chunk_size: int | None,
          group_size: int | None, no_cache: bool) -> None:
    """Build hierarchical memory chunks from an interactions file."""
    config = _get_config(ctx)
    rows = load_interactions(Path(interactions))
    cache = None
    if config.cache.enabled and not no_cache:
        config.ensure_dirs()
        cache = FileChunkCache(config.cache_dir)

    async def _run():
        llm = create_llm(config.llm)
        try:
            builder = HierarchicalMemoryBuilder(llm, chunk_cache=cache, config=config.builder)
            return await builder.build_memory(rows, chunk_size=chunk_size, group_size=group_size)
        finally:
            await llm.close()

    chunks = asyncio.run(_run())
    save_chunks(chunks, Path(out))
    levels = Counter(c.level for c in chunks)
    click.echo(f"Built {len(chunks)} chunks from {len(rows)} interactions -> {out}")
    for level in sorted(levels):
        click.echo(f"  Level {level}: {levels[level]}")


@main.command()
@click.argument("interactions", type=click.Path(exists=True, dir_okay=False))
@click.argument("chunks", type=click.Path(exists=True, dir_okay=False))
def report(interactions: str, chunks: str) -> None:
    """Show how much the chunks compress the raw interactions."""
    reporter = SemanticCompressionReporter()
    click.echo(reporter.make_report(load_interactions(Path(interactions)), load_chunks(Path(chunks))))


@main.command()
@click.argument("chunks", type=click.Path(exists=True, dir_okay=False))
@click.argument("query")
@click.option("--top-k", "-k", default=None, type=int, help="Number of chunks to select")
@click.option("--entity", "-e", multiple=True, help="Participant address to focus on (repeatable)")
@click.option("--interactions", "-i", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Interactions file used to build entity cards")
@click.pass_context
def retrieve(ctx: click.Context, chunks: str, query: str, top_k: int | None,
             entity: tuple[str, ...], interactions: str | None) -> None:
    """Retrieve context for a query and print the chunk tree."""
    config = _get_config(ctx)
    memory = load_chunks(Path(chunks))
    raw = load_interactions(Path(interactions)) if interactions else []

    async def _run():
        llm = create_llm(config.llm)
        try:
            cards: list[EntityCard] = []
            if entity:
                card_builder = EntityCardBuilder(llm)
                cards = [await card_builder.build(e, raw) for e in entity]
            retriever = MultiStageRetriever(llm, config=config.retrieval, index_config=config.index)
            return await retriever.retrieve(query, None, cards, None, memory, k=top_k)
        finally:
            await llm.close()

    result = asyncio.run(_run())
    click.echo("Selected chunk tree:")
    click.echo(render_context_tree(result.selected_chunks))
    click.echo("")
    click.echo(result.context_text)


@main.command()
@click.argument("chunks", type=click.Path(exists=True, dir_okay=False))
@click.argument("question")
@click.option("--top-k", "-k", default=None, type=int, help="Number of chunks to select")
@click.pass_context
def ask(ctx: click.Context, chunks: str, question: str, top_k: int | None) -> None:
    """Answer a question from memory with the chat model."""
    config = _get_config(ctx)
    memory = load_chunks(Path(chunks))

    async def _run() -> str:
        llm = create_llm(config.llm)
        try:
            retriever = MultiStageRetriever(llm, config=config.retrieval, index_config=config.index)
            result = await retriever.retrieve(question, None, [], None, memory, k=top_k)
            prompt = make_question_prompt(question, result.selected_chunks)
            return await llm.complete_chat(
                "You are an omnichannel assistant answering from the user's communication memory.",
                prompt,
            )
        finally:
            await llm.close()

    click.echo(asyncio.run(_run()))


if __name__ == "__main__":
    main()
