"""CLI entry point for gitimages."""

from __future__ import annotations

import json
import logging
import sys
from importlib.metadata import entry_points
from typing import Any

import click
import jsonschema

from gitimages.config import load_schema, load_targets
from gitimages.errors import ConfigurationError, GitImagesError
from gitimages.history import open_repository
from gitimages.identifier import ImageIdentifier
from gitimages.matchers.base import BaseMatcher

logger = logging.getLogger(__name__)


def _discover_matchers() -> dict[str, type[BaseMatcher]]:
    """Discover all registered matcher strategies via entry_points."""
    eps = entry_points(group="gitimages.matchers")
    discovered: dict[str, type[BaseMatcher]] = {}
    for ep in eps:
        try:
            discovered[ep.name] = ep.load()
        except Exception:
            logger.warning("Failed to load matcher '%s'", ep.name, exc_info=True)
    return discovered


def _build_matcher(
    strategy: str,
    image: str,
    setting: str | None,
    auths: list[str],
    timeout: float,
) -> BaseMatcher:
    """Instantiate the *strategy* matcher for *image*; lists the image's tags."""
    matchers = _discover_matchers()
    if strategy not in matchers:
        available = ", ".join(sorted(matchers)) or "none"
        raise ConfigurationError(f"Unknown strategy '{strategy}'. Available: {available}")
    matcher_cls = matchers[strategy]
    value = matcher_cls.default if setting is None else setting
    click.echo(f"  Listing tags for {image} ({strategy}: {value!r})...", err=True)
    return matcher_cls(image, auths=auths, timeout=timeout, **{matcher_cls.option: value})


def _identify(
    repository: str,
    branch: str | None,
    image: str,
    strategy: str,
    setting: str | None,
    auths: list[str],
    timeout: float,
) -> dict[str, Any]:
    """Run one identification and return its result document."""
    matcher = _build_matcher(strategy, image, setting, auths, timeout)
    click.echo(f"  Walking history of {repository}...", err=True)
    with open_repository(repository, branch) as repo:
        identifier = ImageIdentifier(matcher)
        tag = identifier.find_most_recent_image(repo, rev=branch)

    result = {
        "repository": repository,
        "branch": branch,
        "image": image,
        "strategy": strategy,
        "setting": getattr(matcher, matcher.option),
        "tag": tag,
        "found": bool(tag),
        "commits_visited": identifier.visited,
    }
    jsonschema.validate(instance=result, schema=load_schema("result.schema.json"))
    return result


def _dump(data: Any, pretty: bool) -> str:
    return json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)


@click.group()
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose (DEBUG) logging.",
)
def main(verbose: bool) -> None:
    """gitimages — match git commits to published container image tags."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


_auth_option = click.option(
    "--auth",
    "auth",
    multiple=True,
    help="Credentials in registry.domain=user:pass format. Can be repeated.",
)
_timeout_option = click.option(
    "--timeout",
    type=float,
    default=30,
    show_default=True,
    help="Registry HTTP timeout in seconds.",
)
_json_options = [
    click.option("--json", "as_json", is_flag=True, help="Print a JSON result document."),
    click.option(
        "--pretty/--no-pretty",
        default=True,
        help="Pretty-print the JSON output (default: on).",
    ),
]


def _with_json_options(func: Any) -> Any:
    for option in reversed(_json_options):
        func = option(func)
    return func


@main.command()
@click.argument("repository")
@click.argument("image")
@click.option("-b", "--branch", help="Branch to clone and walk. Default: the remote HEAD.")
@click.option(
    "-s",
    "--strategy",
    default="label",
    show_default=True,
    help="Matching strategy (see 'gitimages list').",
)
@click.option("--label", help="Label key for the label strategy.")
@click.option("--prefix", help="Tag prefix for the prefix strategy.")
@_auth_option
@_timeout_option
@_with_json_options
def identify(
    repository: str,
    image: str,
    branch: str | None,
    strategy: str,
    label: str | None,
    prefix: str | None,
    auth: tuple[str, ...],
    timeout: float,
    as_json: bool,
    pretty: bool,
) -> None:
    """Find the most recent IMAGE tag built from a commit of REPOSITORY.

    REPOSITORY is a git URL (cloned to a temporary directory) or a local
    working copy. IMAGE is an image repository reference such as
    bigkevmcd/go-demo or ghcr.io/org/app.
    """
    setting = {"label": label, "prefix": prefix}.get(strategy)
    try:
        result = _identify(
            repository, branch, image, strategy, setting, list(auth), timeout
        )
    except GitImagesError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(_dump(result, pretty))
    elif result["found"]:
        click.echo(result["tag"])
    else:
        click.echo("  No matching image found.", err=True)


@main.command()
@click.argument("config")
@click.option(
    "-t",
    "--target",
    "target_names",
    multiple=True,
    help="Run only the named target(s). Can be repeated. Default: all.",
)
@_auth_option
@_timeout_option
@_with_json_options
def run(
    config: str,
    target_names: tuple[str, ...],
    auth: tuple[str, ...],
    timeout: float,
    as_json: bool,
    pretty: bool,
) -> None:
    """Identify images for every target of a CONFIG targets file (path or URL)."""
    try:
        targets = load_targets(config, timeout=timeout)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    if target_names:
        known = {t.name for t in targets}
        for name in target_names:
            if name not in known:
                available = ", ".join(sorted(known))
                raise click.ClickException(f"Unknown target '{name}'. Available: {available}")
        targets = [t for t in targets if t.name in target_names]

    results: list[dict[str, Any]] = []
    for target in targets:
        click.echo(f"Target {target.name}: {target.image} <- {target.repository}", err=True)
        try:
            result = _identify(
                target.repository,
                target.branch,
                target.image,
                target.strategy,
                target.setting(target.strategy),
                list(auth),
                timeout,
            )
        except GitImagesError as exc:
            raise click.ClickException(f"{target.name}: {exc}") from exc
        results.append({"name": target.name, **result})
        if not as_json:
            click.echo(f"{target.name}: {result['tag']}")

    if as_json:
        click.echo(_dump(results, pretty))


@main.command(name="list")
def list_matchers() -> None:
    """List all available matching strategies."""
    all_matchers = _discover_matchers()
    if not all_matchers:
        click.echo("No matchers found.")
        return

    for name, cls in sorted(all_matchers.items()):
        click.echo(f"  {name:12s}  {cls.__doc__ or ''} (default {cls.option}: {cls.default!r})")


@main.command()
def version() -> None:
    """Print the installed gitimages version."""
    from importlib.metadata import version as dist_version

    click.echo(f"gitimages version {dist_version('gitimages')}")


if __name__ == "__main__":
    main()
