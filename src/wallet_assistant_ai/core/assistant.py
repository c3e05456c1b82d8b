"""WalletAssistant - the chat-facing front of the custody engine.

Takes one user message at a time, works out what the user wants, calls the
:class:`WalletManager` and renders a plain-text reply. Wallet errors become
specific replies; anything unexpected is logged and answered with a generic
apology. Message text is never logged, since it may hold a private key.
"""

from __future__ import annotations

import logging
from pathlib import Path

from wallet_assistant_ai.config import (
    AssistantConfig,
    get_config_path,
    has_unexpanded_placeholder,
    load_config,
)
from wallet_assistant_ai.errors import (
    ChainRpcError,
    EncryptionError,
    InsufficientFundsError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidKeyError,
    NoPendingTransactionError,
    NoWalletError,
    TokenNotConfiguredError,
    TransferFailedError,
    WalletError,
)
from wallet_assistant_ai.llm.router import LLMRouter
from wallet_assistant_ai.nlp.intent import IntentKind, ResolvedIntent
from wallet_assistant_ai.nlp.parser import DEFAULT_INFO, IntentParser
from wallet_assistant_ai.wallet.manager import WalletManager
from wallet_assistant_ai.wallet.models import IntentSubmission, TransferReceipt
from wallet_assistant_ai.wallet.provider import BaseChainGateway, Web3Gateway
from wallet_assistant_ai.wallet.units import format_amount
from wallet_assistant_ai.wallet.vault import CryptoVault

logger = logging.getLogger("wallet_assistant_ai.assistant")

GENERIC_APOLOGY = "Sorry, I could not process your request."

TRANSFER_HELP = (
    "I couldn't understand the transfer details.\n"
    "Please specify the amount and recipient address clearly.\n"
    'Example: "Send 0.1 {native} to 0x123..." or "Send 5 {token} to 0x..."'
)

CONNECT_PROMPT = (
    "Please send me your private key to connect your existing wallet.\n"
    "⚠️ Warning: Never share your private key with anyone else!"
)


class WalletAssistant:
    """A chat assistant that holds custodial wallets for its users.

    Parameters
    ----------
    manager:
        The custody and transfer engine.
    parser:
        Turns free text into intents.
    """

    def __init__(self, manager: WalletManager, parser: IntentParser):
        self.manager = manager
        self.parser = parser
        self._awaiting_key: set[int] = set()

    @classmethod
    def from_config(
        cls,
        config: AssistantConfig,
        gateway: BaseChainGateway | None = None,
    ) -> WalletAssistant:
        """Wire up every component from a loaded configuration."""
        chain = config.chain.resolve()
        if has_unexpanded_placeholder(config.vault.encryption_key):
            raise EncryptionError(
                f"Encryption key placeholder {config.vault.encryption_key} is not set in the environment."
            )
        vault = CryptoVault(config.vault.encryption_key)
        if gateway is None:
            gateway = Web3Gateway(chain, timeout=config.chain.rpc_timeout_seconds)
        manager = WalletManager(
            gateway,
            vault,
            ttl=config.pending.ttl,
            sweep_interval=config.pending.sweep_interval_seconds,
        )

        provider = None
        if config.llm.enabled:
            try:
                provider = LLMRouter(config.llm).get_provider()
            except (ValueError, ImportError) as e:
                logger.warning(f"LLM intent extraction disabled: {e}")
        parser = IntentParser(
            provider,
            native_symbol=chain.native_symbol,
            token_symbol=chain.token_symbol,
        )
        logger.info(f"Assistant '{config.name}' ready on {chain.name}")
        return cls(manager, parser)

    @classmethod
    async def load(cls, base_path: Path | None = None) -> WalletAssistant:
        """Load the assistant from ``.wallet-assistant-ai/config.yaml`` and start it."""
        config_path = get_config_path(base_path)
        if not config_path.exists():
            raise FileNotFoundError(
                f"No configuration found at {config_path}. Run 'wallet-assistant-ai init' first."
            )
        assistant = cls.from_config(load_config(config_path))
        assistant.start()
        return assistant

    def start(self) -> None:
        self.manager.start()

    async def shutdown(self) -> None:
        await self.manager.shutdown()

    @property
    def native_symbol(self) -> str:
        return self.manager.native_symbol

    @property
    def token_symbol(self) -> str:
        return self.manager.token_symbol

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def handle_message(self, user_id: int, text: str) -> str:
        """Answer one chat message from *user_id*."""
        try:
            return await self._dispatch(user_id, text)
        except WalletError as e:
            return self.render_error(e)
        except Exception:
            logger.exception(f"Message handling error for user {user_id}")
            return GENERIC_APOLOGY

    async def handle_intent(self, user_id: int, intent: ResolvedIntent) -> str:
        """Answer an already-resolved intent (e.g. from a button press)."""
        try:
            return await self._run_intent(user_id, intent)
        except WalletError as e:
            return self.render_error(e)
        except Exception:
            logger.exception(f"Intent handling error for user {user_id}")
            return GENERIC_APOLOGY

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, user_id: int, text: str) -> str:
        message = text.strip()
        lowered = message.lower()

        if user_id in self._awaiting_key:
            self._awaiting_key.discard(user_id)
            if lowered in ("cancel", "/cancel"):
                return "Wallet connection cancelled."
            try:
                address = await self.manager.connect_wallet(user_id, message)
            except InvalidKeyError:
                return "❌ Invalid private key. Please try again with /connect"
            return (
                "✅ Wallet connected successfully!\n\n"
                f"Your wallet address: {address}\n\n"
                "Please delete the message containing your private key."
            )

        if lowered in ("confirm", "/confirm"):
            return self.render_receipt(await self.manager.confirm_pending(user_id))
        if lowered in ("cancel", "/cancel"):
            await self.manager.cancel_pending(user_id)
            return "Transaction cancelled."

        if lowered.startswith("/"):
            return await self._run_command(user_id, lowered.split()[0])

        intent = await self.parser.parse(message)
        return await self._run_intent(user_id, intent)

    async def _run_command(self, user_id: int, command: str) -> str:
        commands = {
            "/create": IntentKind.CREATE,
            "/connect": IntentKind.CONNECT,
            "/balance": IntentKind.CHECK_BALANCE,
            "/address": IntentKind.GET_ADDRESS,
        }
        if command in commands:
            return await self._run_intent(user_id, ResolvedIntent(kind=commands[command]))
        if command == "/start":
            return (
                "Welcome! I'm an AI powered wallet assistant. 🤖\n\n"
                "I can manage your wallet using natural language.\n"
                "Type /help to see what I can do."
            )
        if command == "/transfer":
            return self.render_transfer_howto()
        return self.render_help()

    async def _run_intent(self, user_id: int, intent: ResolvedIntent) -> str:
        kind = intent.kind

        if kind is IntentKind.TRANSFER:
            if not intent.is_complete_transfer:
                return TRANSFER_HELP.format(native=self.native_symbol, token=self.token_symbol)
            submission = await self.manager.submit_transfer_intent(
                user_id, intent.amount, intent.token, intent.to
            )
            return self.render_submission(submission)

        if kind is IntentKind.CHECK_BALANCE:
            balances = await self.manager.get_balances(user_id)
            if balances.token_amount is None:
                token_line = f"• {self.token_symbol}: not configured on this network"
            else:
                token_line = f"• {format_amount(balances.token_amount)} {self.token_symbol}"
            return (
                "💰 Your wallet balances:\n\n"
                f"• {format_amount(balances.native_amount)} {self.native_symbol}\n"
                f"{token_line}"
            )

        if kind is IntentKind.GET_ADDRESS:
            address = self.manager.get_address(user_id)
            if address is None:
                raise NoWalletError(user_id)
            return f"🔑 Your wallet address is:\n{address}"

        if kind is IntentKind.CREATE:
            address = await self.manager.create_wallet(user_id)
            return (
                "✅ Wallet created successfully!\n\n"
                f"Your wallet address: {address}\n\n"
                "Keep your wallet details safe!"
            )

        if kind is IntentKind.CONNECT:
            self._awaiting_key.add(user_id)
            return CONNECT_PROMPT

        if kind is IntentKind.INFO:
            return intent.info or DEFAULT_INFO

        return (
            "I'm not sure what you want to do.\n"
            "Try using specific commands or check /help for examples."
        )

    def is_awaiting_key(self, user_id: int) -> bool:
        return user_id in self._awaiting_key

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_submission(self, submission: IntentSubmission) -> str:
        pending = submission.pending
        symbol = self.manager.symbol_for(pending.asset)
        minutes = int(self.manager.ledger.ttl.total_seconds() // 60)
        lines = [
            "🔄 Confirm Transaction:",
            "",
            f"Amount: {pending.amount} {symbol}",
            f"To: {pending.to_address}",
            "",
            "Reply with 'confirm' to proceed or 'cancel' to cancel.",
            f"This request expires in {minutes} minutes.",
        ]
        if submission.superseded is not None:
            old = submission.superseded
            lines.append(
                f"\nThis replaces your previous pending transfer of {old.amount} "
                f"{self.manager.symbol_for(old.asset)} to {old.to_address}."
            )
        return "\n".join(lines)

    def render_receipt(self, receipt: TransferReceipt) -> str:
        return (
            "✅ Transaction successful!\n\n"
            f"Amount: {receipt.amount} {self.manager.symbol_for(receipt.asset)}\n"
            f"To: {receipt.to_address}\n"
            f"Transaction Hash: {receipt.tx_hash}\n\n"
            f"View on Explorer: {receipt.explorer_url}"
        )

    def render_transfer_howto(self) -> str:
        native = self.native_symbol
        return (
            f"💸 How to Transfer {native}:\n\n"
            "Type your transfer like this:\n"
            f'• "Send 5 {native} to 0x123..."\n'
            f'• "Transfer 1.5 {self.token_symbol} to 0x456..."\n'
            f'• "Pay 0.1 {native} to 0x789..."\n\n'
            "⚠️ Important:\n"
            "• Always verify the recipient address\n"
            f"• Keep some {native} for gas fees\n"
            "• You can cancel before confirming"
        )

    def render_help(self) -> str:
        native = self.native_symbol
        return (
            "🔹 Available Commands:\n\n"
            "/create - Create a new wallet\n"
            "/connect - Connect existing wallet\n"
            "/balance - Check wallet balance\n"
            "/address - Show your wallet address\n"
            f"/transfer - Send {native} or {self.token_symbol} to another address\n"
            "/help - Show this help message\n\n"
            "🔸 Natural Language Commands:\n\n"
            '• "Check my balance"\n'
            f'• "Send 0.1 {native} to 0x123..."\n'
            '• "What is my wallet address?"\n\n'
            "💡 Reply 'confirm' or 'cancel' to a pending transfer."
        )

    def render_error(self, error: WalletError) -> str:
        if isinstance(error, NoWalletError):
            return (
                "❌ No wallet found!\n\n"
                "Would you like to:\n"
                "1️⃣ Create a new wallet with /create\n"
                "2️⃣ Connect existing wallet with /connect"
            )
        if isinstance(error, (InsufficientFundsError, TransferFailedError)):
            reason = error.reason if isinstance(error, TransferFailedError) else str(error)
            return f"❌ Transaction failed:\n{reason}"
        if isinstance(error, NoPendingTransactionError):
            return str(error)
        if isinstance(error, (InvalidAmountError, InvalidAddressError)):
            return (
                f"{error}\n"
                + TRANSFER_HELP.format(native=self.native_symbol, token=self.token_symbol)
            )
        if isinstance(error, TokenNotConfiguredError):
            return f"❌ {error}"
        if isinstance(error, InvalidKeyError):
            return "❌ Invalid private key. Please try again with /connect"
        if isinstance(error, ChainRpcError):
            return "⚠️ I couldn't reach the network. Please try again in a moment."
        if isinstance(error, EncryptionError):
            logger.error(f"Vault error: {error}")
            return GENERIC_APOLOGY
        logger.error(f"Unhandled wallet error: {error!r}")
        return GENERIC_APOLOGY
