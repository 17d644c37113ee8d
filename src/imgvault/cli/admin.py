"""Admin tasks for imgvault: database setup, user registration and serving the API."""

import getpass
import os
import sys

import structlog
from dotenv import load_dotenv
from invoke import Collection, Context, Program, task

from imgvault import __version__
from imgvault.config import get_config, get_database_path
from imgvault.error_handling import ImgVaultError
from imgvault.models.database import get_database_manager
from imgvault.models.user import Credentials
from imgvault.services.passwords import get_credential_hasher
from imgvault.services.users import UserStore

logger = structlog.get_logger()


def _load_env(env_file: str) -> None:
    if os.path.exists(env_file):
        logger.info("env_file_loaded", env_file=env_file)
        load_dotenv(dotenv_path=env_file)
    else:
        logger.warning("env_file_not_found", env_file=env_file)
    get_config().clear_cache()


@task
def init_db(c: Context, env_file: str = ".env"):
    """
    Create the database file and schema if they do not exist.

    Args:
        c (Context): Invoke context.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    _load_env(env_file)
    db_path = get_database_path()
    with get_database_manager(db_path, create_if_missing=True):
        pass
    logger.info("database_ready", db_path=db_path)
    print(f"Database ready at {db_path}")


@task
def create_user(c: Context, username: str, password: str = "", env_file: str = ".env"):
    """
    Register a user account. Prompts for the password when it is not given.

    Args:
        c (Context): Invoke context.
        username (str): Login name of the new account.
        password (str): Plaintext password. Prompted for when empty.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    _load_env(env_file)

    if not password:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Repeat password: "):
            logger.error("password_confirmation_mismatch", username=username)
            sys.exit(1)

    with get_database_manager(get_database_path(), create_if_missing=True) as db_manager:
        users = UserStore(db_manager, get_credential_hasher())
        try:
            user = users.create_user(Credentials(username=username, password=password))
        except ImgVaultError as e:
            print(f"Could not create user '{username}': {e.user_message}")
            sys.exit(1)

    print(f"Created user '{user.username}'")


@task
def serve(c: Context, host: str = "", port: int = 0, env_file: str = ".env"):
    """
    Run the HTTP service.

    Args:
        c (Context): Invoke context.
        host (str): Bind address. Defaults to HOST or 127.0.0.1.
        port (int): Bind port. Defaults to PORT or 3000.
        env_file (str): Path to the environment file. Default is '.env'.
    """
    _load_env(env_file)
    if host:
        os.environ["HOST"] = host
    if port:
        os.environ["PORT"] = str(port)
    get_config().clear_cache()

    from imgvault.main import main

    main()


namespace = Collection(init_db, create_user, serve)
program = Program(namespace=namespace, version=__version__, name="imgvault-admin")
