"""
Console walkthrough of the repository factory.

    python scripts/example_console_app.py [database-url]
"""
import sys

from sqlalchemy import Column, String

from repository_factory import Base, EntityBase, RepositoryFactory
from repository_factory.core.config import settings
from repository_factory.core.database import create_schema
from repository_factory.core.logging_config import setup_logging


class User(EntityBase, Base):
    __tablename__ = "users"

    name = Column(String, nullable=False)
    email = Column(String, nullable=False, default="")


def main(url: str) -> bool:
    with RepositoryFactory.from_url(url) as factory:
        create_schema(factory.context.session.get_bind())
        users = factory.create_repository(User)

        exist = users.exists(User.name == "John Doe")

        if not exist:
            users.add(User(name="John Doe", email=""))
            users.save()

        user = users.find(User.name == "John Doe")
        if user is not None:
            user.name = "John Doe Updated"
            users.update(user)
            users.save()

    print(f"User exists: {exist}")
    return exist


if __name__ == "__main__":
    setup_logging(json_output=False)
    main(sys.argv[1] if len(sys.argv) > 1 else settings.DATABASE_URL)
