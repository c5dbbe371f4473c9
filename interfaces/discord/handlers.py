from __future__ import annotations

from typing import Dict, List, Optional

import discord
import structlog
from discord.ext import commands

from application.auth import TokenManager
from application.cache import ResponseCache
from application.history import HistoryProjector
from application.ledger import CoinLedger
from application.services import (
    available_combinations,
    buy_coin,
    client_dashboard,
    coin_history,
    generate_coin,
    list_coins,
    list_transactions,
    login,
    logout,
    register_client,
)
from domain.models import ORIGINAL_ISSUER, Coin, OwnershipEvent, Transaction
from domain.repositories import PasswordHasher, Store
from interfaces.discord.formatting import (
    format_coin_line,
    format_history_line,
    format_transaction_line,
)

logger = structlog.get_logger()

HELP_TEXT = (
    "!register <name> <email> <password>  - create an account (use a DM)\n"
    "!login <email> <password>           - log in (use a DM)\n"
    "!logout                             - log out\n"
    "!me                                 - your coins, value and transactions\n"
    "!coins [page]                       - browse the marketplace\n"
    "!transactions [page]                - latest transactions\n"
    "!history <coin_id>                  - ownership history of a coin\n"
    "!buy <coin_id>                      - buy an available coin\n"
    "!generate <value>                   - mint a new BitSlow coin\n"
    "!combinations                       - how many coin combinations are left\n"
)


def create_discord_bot(
    store: Store,
    ledger: CoinLedger,
    projector: HistoryProjector,
    cache: ResponseCache,
    tokens: TokenManager,
    hasher: PasswordHasher,
) -> commands.Bot:
    """
    Configure and return a Discord bot wired to the marketplace services.

    This module only deals with Discord concerns: parsing commands,
    keeping the per-user session token, and rendering results as text.
    """

    intents = discord.Intents.default()
    intents.message_content = True

    # Disable the default help command so we can provide our own `!help`.
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

    # Session tokens keyed by Discord user ID.
    sessions: Dict[int, str] = {}

    def _token_for(ctx: commands.Context) -> Optional[str]:
        return sessions.get(ctx.author.id)

    @bot.event
    async def on_ready():
        logger.info("discord_bot_ready", user=str(bot.user), user_id=bot.user.id)

    @bot.command(name="start")
    async def start_cmd(ctx: commands.Context):
        await ctx.send(
            "Welcome to the BitSlow marketplace!\n"
            "Use !register and !login to get started, then !coins to browse.\n"
            "Type !help to see available commands."
        )

    @bot.command(name="help")
    async def help_cmd(ctx: commands.Context):
        await ctx.send(HELP_TEXT)

    @bot.command(name="register")
    async def register_cmd(ctx: commands.Context, name: str, email: str, password: str):
        result = register_client(name, email, password, store, hasher)
        if not result.success:
            await ctx.send(result.error_message or "Registration failed.")
            return
        await ctx.send(f"Registration successful. Your client ID is {result.user_id}.")

    @bot.command(name="login")
    async def login_cmd(ctx: commands.Context, email: str, password: str):
        result = login(email, password, store, hasher, tokens)
        if not result.success or result.token is None:
            await ctx.send(result.error_message or "Login failed.")
            return
        sessions[ctx.author.id] = result.token
        await ctx.send(f"Welcome back, {result.client.name}!")

    @bot.command(name="logout")
    async def logout_cmd(ctx: commands.Context):
        result = logout(sessions.pop(ctx.author.id, None), tokens)
        await ctx.send("Logged out." if result.success else result.error_message)

    @bot.command(name="me")
    async def me_cmd(ctx: commands.Context):
        result = client_dashboard(_token_for(ctx), tokens, store)
        if not result.success:
            await ctx.send(result.error_message or "Could not load your account.")
            return

        lines = [
            f"{result.client.name} <{result.client.email}>",
            f"Coins owned: {result.coin_count}",
            f"Total value: {result.monetary_value:,.2f}",
        ]
        recent: List[Transaction] = result.transactions[:10]
        if recent:
            lines.append("Recent transactions:")
            lines.extend(format_transaction_line(tx) for tx in recent)
        await ctx.send("\n".join(lines))

    @bot.command(name="coins")
    async def coins_cmd(ctx: commands.Context, page: int = 1):
        result = list_coins(page, 10, store, cache)
        if not result.items:
            await ctx.send("No coins on this page.")
            return

        coins: List[Coin] = result.items
        lines = [format_coin_line(coin) for coin in coins]
        lines.append(f"Page {result.page} - {result.total} coins in total")
        await ctx.send("\n".join(lines))

    @bot.command(name="transactions")
    async def transactions_cmd(ctx: commands.Context, page: int = 1):
        result = list_transactions(page, 10, store, cache)
        if not result.items:
            await ctx.send("No transactions on this page.")
            return

        lines = [format_transaction_line(tx) for tx in result.items]
        lines.append(f"Page {result.page} - {result.total} transactions in total")
        await ctx.send("\n".join(lines))

    @bot.command(name="history")
    async def history_cmd(ctx: commands.Context, coin_id: int):
        result = coin_history(coin_id, projector)
        if not result.success:
            await ctx.send(result.error_message or "Could not load coin history.")
            return

        events: List[OwnershipEvent] = result.history
        lines = [f"History of coin #{coin_id}:"]
        lines.extend(format_history_line(event) for event in events)
        await ctx.send("\n".join(lines))

    @bot.command(name="buy")
    async def buy_cmd(ctx: commands.Context, coin_id: int):
        result = buy_coin(_token_for(ctx), coin_id, tokens, ledger)
        if not result.success:
            await ctx.send(result.error_message or "Purchase failed.")
            return
        await ctx.send(f"{ctx.author.display_name} bought coin #{coin_id} from {ORIGINAL_ISSUER}.")

    @bot.command(name="generate")
    async def generate_cmd(ctx: commands.Context, value: float):
        result = generate_coin(_token_for(ctx), value, tokens, ledger)
        if not result.success or result.coin is None:
            await ctx.send(result.error_message or "Generation failed.")
            return
        await ctx.send(f"Minted {format_coin_line(result.coin)}")

    @bot.command(name="combinations")
    async def combinations_cmd(ctx: commands.Context):
        availability = available_combinations(ledger)
        status = "available" if availability.available else "exhausted"
        await ctx.send(
            f"{availability.used}/{availability.total} combinations used - generation {status}."
        )

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
            await ctx.send(f"Invalid arguments. Type !help for usage.\n{error}")
            return
        if isinstance(error, commands.CommandNotFound):
            return
        logger.error("discord_command_failed", command=str(ctx.command), error=str(error))
        await ctx.send("Something went wrong, please try again later.")

    return bot
