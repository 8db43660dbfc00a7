"""
Interface de linha de comando (CLI) do Price Scraper.
Usa Typer para uma experiência moderna e rica.
"""

import asyncio
from pathlib import Path
from typing import Optional
from uuid import uuid4

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from config.logging_config import setup_logging
from config.settings import get_settings
from src.core.exceptions import PriceScraperError
from src.products import load_tracked_products
from src.scrapers.session import TimeoutBudget
from src.tracker import PriceTracker, TrackingReport

app = typer.Typer(
    name="price-scraper",
    help="Monitoramento de preços via browser headless.",
    add_completion=False,
)

console = Console()


def run_async(coro):
    """Helper para executar corrotinas."""
    return asyncio.run(coro)


def _configure_logging() -> None:
    settings = get_settings()
    setup_logging(
        level=settings.log_level,
        log_path=settings.log_path,
        json_format=settings.log_json,
        run_id=uuid4().hex[:8],
    )


@app.command("scrape")
def scrape(
    url: str = typer.Argument(..., help="URL da página do produto"),
    selector: str = typer.Argument(..., help="Seletor CSS do elemento de preço"),
    nav_timeout: Optional[float] = typer.Option(None, "--nav-timeout", help="Timeout de navegação (s)"),
    selector_timeout: Optional[float] = typer.Option(None, "--selector-timeout", help="Timeout do seletor (s)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Saída em formato JSON"),
):
    """
    Testa o scraping de uma única URL (sem retry, sem persistência).

    Exemplos:
        price-scraper scrape https://www.apple.com/iphone ".current-price"
        price-scraper scrape https://loja.com/p/123 "#price" --nav-timeout 60
    """
    _configure_logging()
    settings = get_settings()
    defaults = TimeoutBudget.from_settings(settings)
    budget = TimeoutBudget(
        navigation=nav_timeout or defaults.navigation,
        selector=selector_timeout or defaults.selector,
        extraction=defaults.extraction,
    )

    async def _run():
        async with PriceTracker(settings=settings) as tracker:
            return await tracker.scrape_once(url, selector, budget)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Extraindo preço de {url}...", total=None)
            result = run_async(_run())
    except PriceScraperError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(code=2)

    if json_output:
        console.print_json(result.model_dump_json())
        raise typer.Exit(code=0 if result.is_success else 1)

    if result.is_success:
        console.print(Panel(
            f"[bold]URL:[/bold] {url}\n"
            f"[bold]Seletor:[/bold] {selector}\n"
            f"[bold]Preço:[/bold] [green]{result.price}[/green]\n"
            f"[bold]Duração:[/bold] {result.duration_seconds:.2f}s",
            title="✓ Preço extraído",
            border_style="green",
        ))
        return

    console.print(Panel(
        f"[bold]URL:[/bold] {url}\n"
        f"[bold]Seletor:[/bold] {selector}\n"
        f"[bold]Motivo:[/bold] [red]{result.error.kind.value}[/red]\n"
        f"[bold]Detalhe:[/bold] {result.error.message or '-'}",
        title="✗ Falha no scraping",
        border_style="red",
    ))
    raise typer.Exit(code=1)


@app.command("track")
def track(
    products_file: Path = typer.Argument(..., help="JSON com os produtos cadastrados"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Sessões simultâneas"),
    no_save: bool = typer.Option(False, "--no-save", help="Não persistir resultados"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Saída em formato JSON"),
):
    """
    Executa scraping de todos os produtos ativos do arquivo.

    Exemplos:
        price-scraper track produtos.json
        price-scraper track produtos.json --workers 5 --no-save
    """
    _configure_logging()
    settings = get_settings()
    if workers:
        settings = settings.model_copy(update={"max_concurrent_sessions": workers})

    try:
        products = load_tracked_products(products_file)
    except PriceScraperError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(code=2)

    async def _run():
        async with PriceTracker(settings=settings) as tracker:
            return await tracker.track(products, save_results=not no_save)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Monitorando {len(products)} produtos...", total=None)
        report = run_async(_run())

    if json_output:
        console.print_json(report.model_dump_json())
        return

    _display_report(report)


@app.command("history")
def price_history(
    url: Optional[str] = typer.Argument(None, help="URL do produto"),
    product: Optional[str] = typer.Option(None, "--product", "-p", help="ID do produto"),
    days: int = typer.Option(30, "--days", "-d", help="Período em dias"),
):
    """
    Mostra histórico de preços de um produto.
    """
    _configure_logging()
    tracker = PriceTracker()
    history = run_async(
        tracker.get_price_history(url=url, product_id=product, days=days)
    )

    if not history:
        console.print("[yellow]Nenhum histórico encontrado[/yellow]")
        return

    table = Table(title=f"Histórico de Preços ({days} dias)")
    table.add_column("Data", style="cyan")
    table.add_column("Produto", style="green")
    table.add_column("URL", overflow="fold")
    table.add_column("Preço", justify="right", style="yellow")
    table.add_column("Tentativas", justify="right")

    for entry in history:
        table.add_row(
            entry["scraped_at"][:19],
            entry["product_id"] or "-",
            entry["url"],
            entry["price"],
            str(entry["attempts"]),
        )

    console.print(table)


@app.command("stale")
def stale_selectors(
    threshold: int = typer.Option(3, "--threshold", "-t", help="Falhas consecutivas"),
):
    """
    Lista seletores que falharam repetidamente desde o último preço.
    """
    _configure_logging()
    tracker = PriceTracker()
    stale = run_async(tracker.get_stale_selectors(threshold=threshold))

    if not stale:
        console.print("[green]Nenhum seletor desatualizado[/green]")
        return

    table = Table(title="Seletores Desatualizados")
    table.add_column("Produto", style="cyan")
    table.add_column("URL", overflow="fold")
    table.add_column("Seletor", style="yellow")
    table.add_column("Falhas", justify="right", style="red")
    table.add_column("Última falha")

    for entry in stale:
        table.add_row(
            entry["product_id"] or "-",
            entry["url"],
            entry["selector"],
            str(entry["misses"]),
            entry["last_miss"][:19],
        )

    console.print(table)


@app.command("version")
def version():
    """
    Exibe a versão do sistema.
    """
    from src import __version__

    console.print(f"[bold blue]Price Scraper[/bold blue] v{__version__}")
    console.print("Monitoramento de preços via browser headless")


# FUNÇÕES DE DISPLAY

def _display_report(report: TrackingReport):
    """Exibe resultado do monitoramento formatado."""
    metadata = report.metadata

    console.print()
    console.print(Panel(
        f"[bold]Produtos ativos:[/bold] {metadata.total_requests}\n"
        f"[bold]Inativos ignorados:[/bold] {report.skipped_inactive}\n"
        f"[bold]Sucesso:[/bold] [green]{metadata.succeeded}[/green]  "
        f"[bold]Falha:[/bold] [red]{metadata.failed}[/red]\n"
        f"[bold]Tentativas:[/bold] {metadata.total_attempts}\n"
        f"[bold]Duração:[/bold] {metadata.duration_seconds or 0:.2f}s",
        title="🔍 Monitoramento",
        border_style="blue",
    ))

    if not report.results:
        console.print("[yellow]Nenhum produto ativo.[/yellow]")
        return

    table = Table(title="Resultados")
    table.add_column("Produto", style="cyan", width=12)
    table.add_column("URL", style="white", overflow="fold")
    table.add_column("Preço", justify="right", style="green")
    table.add_column("Status")
    table.add_column("Tent.", justify="right")

    for result in report.results:
        if result.is_success:
            status = "[green]✓[/green]"
            price = str(result.price)
        else:
            status = f"[red]{result.error.kind.value}[/red]"
            price = "-"

        table.add_row(
            result.request.product_id or "-",
            result.request.url,
            price,
            status,
            str(result.attempts),
        )

    console.print(table)

    if report.saved_to:
        console.print(f"[dim]Resultados salvos em: {report.saved_to}[/dim]")


# ENTRY POINT

def main():
    """Entry point principal."""
    app()


if __name__ == "__main__":
    main()
