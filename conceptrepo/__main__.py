"""
Concept repository REST API
"""

import argparse
import asyncio
import inspect
import json
import logging
import os
import sys
from pathlib import Path

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from conceptrepo.config import ENV_PREFIX, get_settings, validate_settings
from conceptrepo.github.client import GitHubContentStore
from conceptrepo.index.rebuild import rebuild_index


def run(args):
    settings = get_settings()
    logging.info(f"Starting server at port {args.port}, debug={not args.nodebug}, github={settings.github_api_url}")
    if validate_settings():
        logging.warning(validate_settings())
    logging.info(
        "To change server config, create an .env file and/or set environment parameters,\n"
        f"{' ' * 26}see conceptrepo/config.py for more information.\n"
        f"{' ' * 26}You can also run `python -m conceptrepo create-env` to create a template .env file\n"
    )

    log_config = "logging.yml" if Path("logging.yml").exists() else LOGGING_CONFIG
    uvicorn.run(
        "conceptrepo.api:app", host="0.0.0.0", reload=not args.nodebug, port=int(args.port), log_config=log_config
    )


def create_env(args):
    if os.path.exists(".env"):
        print("*** File .env already exists, quitting ***")
        sys.exit(1)

    env = {
        f"{ENV_PREFIX}host": args.host,
        f"{ENV_PREFIX}github_client_id": args.client_id or "",
        f"{ENV_PREFIX}github_client_secret": "",
    }
    with open(".env", "w") as f:
        for key, val in env.items():
            f.write(f"{key}={val}\n")
    os.chmod(".env", 0o600)
    print("*** Created .env file, fill in the client secret of your GitHub OAuth app ***")


async def rebuild(args):
    token = args.token or os.environ.get("GITHUB_TOKEN")
    if not token:
        logging.error("A GitHub token is needed, use --token or set GITHUB_TOKEN")
        sys.exit(1)
    owner, _, repo = args.repository.partition("/")
    if not (owner and repo):
        logging.error(f"Repository should be given as owner/repo, not {args.repository}")
        sys.exit(1)

    async with GitHubContentStore(token, owner, repo, args.ref) as store:
        report = await rebuild_index(store, args.directory, args.index_name, args.batch_size)
    print(json.dumps(report.model_dump(by_alias=True), indent=2))
    if report.errors:
        sys.exit(2)


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m conceptrepo")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the backend API in development mode")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (useful for testing downstream clients)",
    )
    p.add_argument("-p", "--port", help="Port", default=5000)
    p.set_defaults(func=run)

    p = subparsers.add_parser("create-env", help="Create a template .env file")
    p.add_argument("--host", help="The url this instance will be served at", default="http://localhost:5000")
    p.add_argument("--client-id", help="Client id of the GitHub OAuth app")
    p.set_defaults(func=create_env)

    p = subparsers.add_parser("rebuild", help="Rebuild the concept indexes of a repository")
    p.add_argument("repository", help="The repository, as owner/repo")
    p.add_argument("-t", "--token", help="GitHub access token (default: the GITHUB_TOKEN environment variable)")
    p.add_argument("-r", "--ref", help="Branch to rebuild (default: the default branch)")
    p.add_argument("-d", "--directory", help="Only rebuild this directory and its subdirectories")
    p.add_argument("-i", "--index-name", help="Index namespace (default: the index_name setting)")
    p.add_argument("-b", "--batch-size", type=int, help="Number of files to fetch concurrently")
    p.set_defaults(func=rebuild)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    httpx_logger = logging.getLogger("httpx")
    httpx_logger.setLevel(logging.WARNING)

    if inspect.iscoroutinefunction(args.func):
        asyncio.run(args.func(args))
    else:
        args.func(args)


if __name__ == "__main__":
    main()
