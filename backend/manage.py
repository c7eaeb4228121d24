import asyncio
import traceback
from typing import Optional

import typer

import news_api.db_models  # noqa: F401

from news_api.config import settings
from news_api.database import Database
from news_api.exceptions import AppError
from news_api.users.models import UserRole
from news_api.users.schema import UserCreate
from news_api.users.service import create_user

cli = typer.Typer(help="News Management API maintenance commands.")


@cli.command(name="init-db")
def init_db(
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Overrides DATABASE_URL."),
):
    """
    Create every table that does not exist yet.
    """
    async def main():
        db = Database(database_url or settings.DATABASE_URL)
        try:
            await db.create_all()
        finally:
            await db.dispose()

    asyncio.run(main())
    print("✅ Database initialised")


@cli.command(name="create-admin")
def create_admin(
    username: str = typer.Option(..., "--username", "-u", help="Admin's username (alphanumeric)."),
    email: str = typer.Option(..., "--email", "-e", help="Admin's email address."),
    password: str = typer.Option(..., "--password", "-p", help="Admin's password."),
    first_name: Optional[str] = typer.Option(None, "--first-name"),
    last_name: Optional[str] = typer.Option(None, "--last-name"),
):
    """
    Creates a new user with 'admin' privileges in the database.
    """
    async def main():
        user_data = UserCreate(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
        )
        db = Database(settings.DATABASE_URL)
        try:
            await db.create_all()
            async with db.session_factory() as session:
                return await create_user(session, user_data, role=UserRole.ADMIN)
        finally:
            await db.dispose()

    print(f"Creating admin user '{email}'...")
    try:
        admin = asyncio.run(main())
    except AppError as e:
        print(f"\n❌ Error creating admin user: {e.message}")
        raise typer.Exit(code=1)
    except Exception as e:
        traceback.print_exc()
        print(f"\n❌ Error creating admin user: {e}")
        raise typer.Exit(code=1)

    print("\n✅ Admin user created successfully!")
    print(f"   ID: {admin['id']}")
    print(f"   Username: {admin['username']}")
    print(f"   Email: {admin['email']}")
    print(f"   Role: {admin['role'].value}")


if __name__ == "__main__":
    cli()
