# cli.py: interactive catalog admin console
import asyncio
import logging
import sys
from datetime import datetime
from typing import Any, List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import PathCompleter, WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from catalog_sdk.cache import RequestCache
from catalog_sdk.config import get_settings
from catalog_sdk.errors import CatalogError, FormValidationError
from catalog_sdk.forms import CategoryForm, ProductForm
from catalog_sdk.models import Category, ProductImage
from catalog_sdk.notify import Notification, Notifier
from catalog_sdk.views import CatalogView, CategoryListView, ImageStatus, ProductListView, ViewState

console = Console()

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})

_session: Optional[PromptSession] = None


def get_session() -> PromptSession:
    global _session
    if _session is None:
        _session = PromptSession(style=custom_style)
    return _session


IMAGE_LABELS = {
    ImageStatus.LOADING: "[dim]loading…[/dim]",
    ImageStatus.LOADED: "[green]✔[/green]",
    ImageStatus.PLACEHOLDER: "[dim]no image[/dim]",
}


def setup_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


# ---------------------------
# Display helpers
# ---------------------------
def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


def show_notification(n: Notification):
    style = "red" if n.is_error else "green"
    console.print(Panel.fit(f"[{style}]{n.description}[/{style}]", title=n.title))


def show_empty(title: str, hint: str):
    console.print(Panel(f"[italic yellow]{title}[/italic yellow]\n[dim]{hint}[/dim]", border_style="yellow"))


def show_view_problem(state: ViewState, error_message: Optional[str], what: str) -> bool:
    """Prints the loading/error panel; True when there is nothing else to show."""
    if state is ViewState.LOADING:
        console.print(f"[dim]Loading {what}…[/dim]")
        return True
    if state is ViewState.ERROR:
        console.print(Panel(f"[red]Error loading {what}[/red]\n[dim]{error_message}[/dim]", border_style="red"))
        return True
    if error_message:
        # last refresh failed; what follows is the previous data
        console.print(f"[red]Refresh failed:[/red] {error_message}")
    return False


def _name_cell(p) -> Text:
    cell = Text(p.name or "Unnamed Product", style="bold")
    if p.description:
        cell.append(f"\n{p.description}", style="dim")
    return cell


def product_table(rows, title: str) -> Table:
    table = Table(
        title=title,
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Image", width=10)
    table.add_column("Name", width=24)
    table.add_column("Category", width=15)
    table.add_column("Price", justify="right", width=12)
    table.add_column("Stock", width=14)

    for row in rows:
        p = row.product
        stock_style = "green" if (p.quantity or 0) > 0 else "red"
        table.add_row(
            str(p.id if p.id is not None else "N/A"),
            IMAGE_LABELS[row.image_status],
            _name_cell(p),
            p.category_name or "-",
            row.price_label,
            f"[{stock_style}]{row.stock_label}[/{stock_style}]",
        )
    return table


def show_catalog(view: CatalogView):
    if view.summary:
        console.print(f"[cyan]{view.summary}[/cyan]")
    if show_view_problem(view.state, view.error_message, "products"):
        return
    if view.state in (ViewState.EMPTY, ViewState.NO_RESULTS):
        show_empty(*view.empty_message)
        return
    console.print(product_table(view.rows, f"📦 {view.title}"))


def show_products(view: ProductListView):
    if show_view_problem(view.state, view.error_message, "products"):
        return
    if view.state is ViewState.EMPTY:
        show_empty("No products found", "Create your first product to get started")
        return
    console.print(product_table(view.rows, "📦 Product Management"))


def show_categories(view: CategoryListView):
    if show_view_problem(view.state, view.error_message, "categories"):
        return
    if view.state is ViewState.EMPTY:
        show_empty("No categories found", "Create your first category to get started")
        return
    table = Table(title="🏷️ Categories", box=box.ROUNDED, header_style="bold blue", show_lines=True)
    table.add_column("ID", style="dim", width=6)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Description", width=44)
    for c in view.items:
        table.add_row(str(c.id), c.name, c.description or "")
    console.print(table)


def show_image(image: Optional[ProductImage], title: str = "Image preview"):
    if image is None or image.is_empty:
        console.print(Panel.fit("[dim]No image[/dim]", title=title))
        return
    console.print(Panel.fit(
        f"[bold]{image.filename or 'image'}[/bold]\n"
        f"Type: {image.media_type}\n"
        f"Size: {image.size / 1024:.1f} KB",
        title=title,
        border_style="cyan"
    ))


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🛍️ Catalog Admin",
        f"[bold blue]{get_settings().api_url}[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Input helpers with autocomplete
# ---------------------------
async def ask(message: str, completer=None, default: str = "") -> str:
    return await get_session().prompt_async(f"{message} ", completer=completer, default=default)


async def confirm(message: str) -> bool:
    answer = await ask(f"{message} [y/N]", completer=WordCompleter(["y", "n"]))
    return answer.strip().lower() in ("y", "yes")


async def pick(items: List[Any], what: str):
    if not items:
        console.print(f"[italic yellow]No {what}s to choose from[/italic yellow]")
        return None
    words = [str(i.id) for i in items] + [i.name for i in items if i.name]
    raw = (await ask(f"Enter {what} ID or name", completer=WordCompleter(words, ignore_case=True))).strip()
    for i in items:
        if raw == str(i.id) or raw.lower() == (i.name or "").lower():
            return i
    console.print(f"[red]Unknown {what}: {raw!r}[/red]")
    return None


async def try_api(awaitable, description: str = "Processing..."):
    """Awaits with a spinner; CatalogError becomes a red status panel and None."""
    try:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), transient=True) as progress:
            progress.add_task(description=description, total=None)
            return await awaitable
    except CatalogError as e:
        console.print(show_status(f"Error: {e}", False))
        return None


# ---------------------------
# Forms
# ---------------------------
async def fill_category_form(form: CategoryForm):
    form.name = await ask("🏷️ Category name *", default=form.name)
    form.description = await ask("📝 Description", default=form.description)


async def fill_product_form(form: ProductForm, categories: List[Category]):
    form.name = await ask("📦 Product name *", default=form.name)
    form.description = await ask("📝 Description", default=form.description)
    form.price = await ask("💰 Price *", default=form.price)
    form.stock = await ask("🔢 Stock quantity", default=form.stock)
    names = {c.name: str(c.id) for c in categories}
    raw = await ask(
        "🏷️ Category (ID or name) *",
        completer=WordCompleter(list(names) + list(names.values()), ignore_case=True),
        default=form.category_id,
    )
    form.category_id = names.get(raw.strip(), raw.strip())

    show_image(form.image_preview, "Current image")
    hint = "leave empty to keep current image" if form.is_editing else "required for new products"
    path = (await ask(f"🖼️ Image file ({hint})", completer=PathCompleter(expanduser=True))).strip()
    if path:
        try:
            show_image(form.select_image(path), "Selected image")
        except FormValidationError as e:
            console.print(show_status(e.message, False))


async def run_form(form, fill, *fill_args) -> bool:
    while True:
        await fill(form, *fill_args)
        result = await try_api(form.submit(), "Saving...")
        if result is not None:
            return True
        # values are kept; go round again with them as defaults
        if not await confirm("Try again?"):
            form.cancel()
            return False


# ---------------------------
# Main menu
# ---------------------------
MENU = [
    ("1", "📦 Browse catalog", "8", "🏷️ List categories"),
    ("2", "🔍 Search products", "9", "➕ Create category"),
    ("3", "✖️ Clear search", "10", "✏️ Edit category"),
    ("4", "🗂️ Manage products", "11", "🗑️ Delete category"),
    ("5", "➕ Create product", "12", "🔄 Refresh everything"),
    ("6", "✏️ Edit product", "", ""),
    ("7", "🗑️ Delete product", "q", "👋 Quit"),
]


def show_menu():
    menu_table = Table.grid(padding=(0, 2))
    menu_table.add_column("Key", style="bold cyan", width=4)
    menu_table.add_column("Option", width=30)
    menu_table.add_column("Key", style="bold cyan", width=4)
    menu_table.add_column("Option", width=30)
    for row in MENU:
        menu_table.add_row(*row)
    console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))


async def delete_with_confirmation(deletion, items, what: str):
    target = await pick(items, what)
    if target is None:
        return
    prompt = deletion.request(target)
    console.print(Panel.fit(Text(prompt), title=f"Delete {what.capitalize()}", border_style="red"))
    if await confirm("Delete?"):
        await try_api(deletion.confirm(), "Deleting...")
    else:
        deletion.cancel()


async def menu(cache: RequestCache):
    notifier = Notifier()
    notifier.add_listener(show_notification)

    catalog = CatalogView(cache, notifier)
    products = ProductListView(cache, notifier)
    categories = CategoryListView(cache, notifier)

    console.clear()
    console.print(create_header())
    await try_api(cache.settle(), "Loading catalog...")

    try:
        while True:
            show_menu()
            choice = (await ask(
                "\nChoose an option",
                completer=WordCompleter([str(i) for i in range(1, 13)] + ["q", "quit", "exit"])
            )).strip().lower()

            if choice == "1":
                show_catalog(catalog)

            elif choice == "2":
                term = await ask("Enter search term", default=catalog.search_term)
                catalog.search(term)
                await try_api(cache.settle(), "Searching...")
                show_catalog(catalog)

            elif choice == "3":
                catalog.clear_search()
                show_catalog(catalog)

            elif choice == "4":
                show_products(products)

            elif choice == "5":
                form = products.create_form()
                if not products.categories:
                    console.print("[yellow]Create a category first.[/yellow]")
                    continue
                if await run_form(form, fill_product_form, products.categories):
                    await cache.settle()
                    show_products(products)

            elif choice == "6":
                target = await pick(products.items, "product")
                if target is not None:
                    form = await try_api(products.edit_form(target), "Loading product...")
                    if form and await run_form(form, fill_product_form, products.categories):
                        await cache.settle()
                        show_products(products)

            elif choice == "7":
                await delete_with_confirmation(products.deletion, products.items, "product")
                await cache.settle()
                show_products(products)

            elif choice == "8":
                show_categories(categories)

            elif choice == "9":
                if await run_form(categories.create_form(), fill_category_form):
                    await cache.settle()
                    show_categories(categories)

            elif choice == "10":
                target = await pick(categories.items, "category")
                if target is not None and await run_form(categories.edit_form(target), fill_category_form):
                    await cache.settle()
                    show_categories(categories)

            elif choice == "11":
                await delete_with_confirmation(categories.deletion, categories.items, "category")
                await cache.settle()
                show_categories(categories)

            elif choice == "12":
                cache.invalidate_tags({"Product", "ProductImage", "Category"})
                await try_api(cache.settle(), "Refreshing...")
                console.print(show_status("Catalog refreshed"))

            elif choice in ("q", "quit", "exit"):
                if await confirm("Are you sure you want to quit?"):
                    console.print(Panel.fit("[bold green]Bye! 👋[/bold green]", title="Goodbye"))
                    return

            console.print()
            console.rule(style="dim")
    finally:
        catalog.close()
        products.close()
        categories.close()


async def main():
    settings = get_settings()
    setup_logging(settings.log_level)
    async with RequestCache.from_settings(settings) as cache:
        await menu(cache)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, EOFError):
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
