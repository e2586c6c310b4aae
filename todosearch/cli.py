import asyncio
import random
from datetime import datetime, timedelta, timezone

import click

from todosearch.core.config import get_settings
from todosearch.core.errors import SearchIndexError
from todosearch.core.logging import configure_logging
from todosearch.database import create_db_and_tables, create_engine, create_session_factory
from todosearch.models import TodoCreate, UserCreate
from todosearch.search.gateway import SearchIndexGateway
from todosearch.search.sync import SearchSynchronizer
from todosearch.services.todo_service import TodoService
from todosearch.services.user_service import UserService

WORDS = (
    "buy milk bread eggs call plumber book flight renew passport pay rent "
    "water plants clean garage fix bike review report email team plan trip "
    "walk dog read chapter write notes cook dinner laundry groceries dentist"
).split()


def random_content(rng: random.Random) -> str:
    return " ".join(rng.choice(WORDS) for _ in range(rng.randint(3, 12))).capitalize()


@click.group(name="todosearch")
def cli():
    """Todo search maintenance commands."""
    configure_logging(get_settings().log_level)


@cli.command("init-index")
def init_index_command():
    """Create the search index or re-apply its mapping."""

    async def run():
        gateway = SearchIndexGateway.from_settings(get_settings())
        try:
            await gateway.ensure_index()
        finally:
            await gateway.close()

    try:
        asyncio.run(run())
    except SearchIndexError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Index {get_settings().search_index_name} is ready.")


@cli.command("seed")
@click.option("--users", "user_count", default=20, show_default=True)
@click.option("--todos-per-user", default=100, show_default=True)
@click.option("--random-seed", default=None, type=int, help="Seed for reproducible data")
def seed_command(user_count, todos_per_user, random_seed):
    """Create users with todos, indexing every todo."""
    rng = random.Random(random_seed)

    async def run():
        settings = get_settings()
        engine = create_engine(settings)
        await create_db_and_tables(engine)
        gateway = SearchIndexGateway.from_settings(settings)
        sync = SearchSynchronizer(gateway)
        session_factory = create_session_factory(engine)
        now = datetime.now(timezone.utc)
        suffix = rng.getrandbits(32)

        try:
            async with session_factory() as db:
                for i in range(user_count):
                    user = await UserService.create_user(
                        UserCreate(name=f"user{i}", email=f"user{i}.{suffix}@example.com"),
                        db,
                    )
                    for _ in range(todos_per_user):
                        await TodoService.create_todo(
                            TodoCreate(
                                content=random_content(rng),
                                completed=False,
                                due_date=now + timedelta(days=rng.randint(1, 365)),
                            ),
                            user.id,
                            db,
                            sync,
                        )
                    click.echo(f"Created user {user.name} with {todos_per_user} todos")
        finally:
            await gateway.close()
            await engine.dispose()

    click.echo("Start seeding ...")
    asyncio.run(run())
    click.echo("Seeding finished.")


if __name__ == "__main__":
    cli()
