import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from catalog_pdf.config.errors import ConfigLoaderError
from catalog_pdf.config.loader import load_app_config
from catalog_pdf.logger import configure_logging, get_logger
from catalog_pdf.runtime.context import build_context
from catalog_pdf.state.storage import LastUpdateStore

console = Console()
cli = typer.Typer(help="Генерация PDF-каталога товаров Shopify.")
logger = get_logger(__name__)


def _common_options() -> dict:
    return dict(
        config_path=typer.Option(
            None,
            "--config",
            "-c",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            envvar="APP_CONFIG_PATH",
            help="Путь к конфигурации (YAML/JSON). "
            "Если не указан, используется конфигурация из переменных окружения.",
        ),
        log_level=typer.Option(
            "INFO",
            "--log-level",
            envvar="LOG_LEVEL",
            help="Уровень логирования (DEBUG/INFO/WARNING/ERROR/CRITICAL).",
        ),
    )


def _load_config(config_path: Optional[Path]):
    try:
        return load_app_config(config_path)
    except ConfigLoaderError as exc:
        console.print(f"[bold red]Ошибка конфигурации:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


@cli.command("generate")
def generate_catalog(
    config_path: Optional[Path] = _common_options()["config_path"],
    log_level: str = _common_options()["log_level"],
) -> None:
    """Однократно собирает каталог и завершает работу."""
    configure_logging(log_level.upper())  # type: ignore[arg-type]
    config = _load_config(config_path)
    context = build_context(config)
    try:
        outcome = context.coordinator.generate()
    finally:
        context.close()
    if outcome.status in {"success", "unchanged"}:
        console.print(
            f"[bold green]Каталог готов[/bold green]: {outcome.pdf_path} "
            f"(товаров: {outcome.product_count})"
        )
        return
    console.print(f"[bold red]Каталог не собран[/bold red]: {outcome.message}")
    raise typer.Exit(code=1)


@cli.command("serve")
def serve(
    config_path: Optional[Path] = _common_options()["config_path"],
    log_level: str = _common_options()["log_level"],
    no_schedule: bool = typer.Option(
        False,
        "--no-schedule",
        help="Не запускать плановую пересборку (только HTTP).",
    ),
) -> None:
    """HTTP-сервер с плановой пересборкой каталога."""
    import uvicorn

    from catalog_pdf.api.server import create_app

    configure_logging(log_level.upper())  # type: ignore[arg-type]
    config = _load_config(config_path)
    app = create_app(build_context(config), with_scheduler=not no_schedule)
    console.print(
        f"[cyan]Сервер слушает[/cyan] http://{config.server.host}:{config.server.port}"
    )
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=log_level.lower(),
    )


@cli.command("last-update")
def last_update(
    config_path: Optional[Path] = _common_options()["config_path"],
) -> None:
    """Показывает отметку о последней успешной генерации."""
    config = _load_config(config_path)
    record = LastUpdateStore(config.state.last_update_path).load()
    console.print_json(json.dumps(record.to_json()))


def entrypoint() -> None:
    """CLI entrypoint для Docker."""
    cli()
