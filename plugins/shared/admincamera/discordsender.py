import asyncio
import datetime
import logging
import os
import threading
import discord
import requests
from dotenv import load_dotenv

Log = logging.getLogger(__name__)

TOKEN_PLACEHOLDER = "your_token_here"
ENV_TEMPLATE = \
"""DISCORD_BOT_TOKEN=your_token_here
"""

DEFAULT_FOOTER = "Squad Server"

def LoadToken(envPath : str) -> str:
    """Reads DISCORD_BOT_TOKEN from the given .env file, writing a template file when it is missing."""
    if not os.path.exists(envPath):
        Log.info(f"{envPath} not found, creating a template for the Discord bot token")
        try:
            with open(envPath, "wt", encoding="utf-8") as f:
                f.write(ENV_TEMPLATE)
        except OSError as e:
            Log.error(f"Unable to create {envPath}: {e}")
            return None
    if not load_dotenv(envPath, override=True):
        Log.warning(f"Unable to load environment variables from {envPath}")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if token == None or token == "" or token.lower() == TOKEN_PLACEHOLDER:
        return None
    return token

def IsConfigured(value) -> bool:
    return value != None and str(value) != "" and str(value).lower() != "default"


class DiscordSender():
    """
    Delivers embeds either through a bot client that posts to a channel, or
    through a channel webhook. The bot runs its own asyncio loop on a daemon
    thread; sends are handed over with run_coroutine_threadsafe so the caller
    never blocks on Discord. Webhook sends are synchronous over requests.
    """
    def __init__(self, channelId = None, token : str = None, webhookUrl : str = None, footer : str = DEFAULT_FOOTER):
        self._channelId = channelId
        self._token = token
        self._webhookUrl = webhookUrl
        self._footer = footer if footer else DEFAULT_FOOTER
        self._client : discord.Client = None
        self._thread : threading.Thread = None
        self._webhook : discord.SyncWebhook = None
        self._session : requests.Session = None

    def IsWebhook(self) -> bool:
        return IsConfigured(self._webhookUrl)

    def IsEnabled(self) -> bool:
        if self.IsWebhook():
            return True
        return IsConfigured(self._channelId) and self._token != None

    def Start(self) -> bool:
        if self.IsWebhook():
            self._session = requests.Session()
            try:
                self._webhook = discord.SyncWebhook.from_url(self._webhookUrl, session=self._session)
            except ValueError as e:
                Log.error(f"Invalid Discord webhook url: {e}")
                return False
            Log.info("Discord notifications will be sent through the configured webhook")
            return True
        if not self.IsEnabled():
            Log.info("Discord bot token or channel is missing, Discord sender will not start")
            return False
        intents = discord.Intents.default()
        self._client = discord.Client(intents=intents)
        self._thread = threading.Thread(target=self._BotThreadHandler, daemon=True)
        self._thread.start()
        Log.info("Discord bot thread started")
        return True

    def _BotThreadHandler(self):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._client.start(self._token))
        except Exception as e:
            Log.error(f"Error running Discord bot: {e}")
        finally:
            if not self._client.is_closed():
                loop.run_until_complete(self._client.close())
            loop.close()

    def Stop(self):
        if self._client != None and self._thread != None and self._thread.is_alive():
            Log.info("Signaling Discord bot thread to shut down...")
            future = asyncio.run_coroutine_threadsafe(self._client.close(), self._client.loop)
            try:
                future.result(timeout=5)
            except TimeoutError:
                Log.error("Timed out waiting for bot client to close gracefully.")
            except Exception as e:
                Log.error(f"Error during bot shutdown: {e}")
            self._thread.join(timeout=5)
            if self._thread.is_alive():
                Log.debug("Discord bot thread did not terminate.")
            else:
                Log.info("Discord bot thread has been shut down.")
        self._thread = None
        self._client = None
        if self._session != None:
            self._session.close()
            self._session = None
        self._webhook = None

    def BuildEmbed(self, title : str, description : str = None, color : int = 0, fields : list = None) -> discord.Embed:
        embed = discord.Embed(title=title, description=description, color=color,
                              timestamp=datetime.datetime.now(datetime.timezone.utc))
        for field in fields or []:
            embed.add_field(name=field["name"], value=field["value"], inline=field.get("inline", False))
        embed.set_footer(text=self._footer)
        return embed

    def SendEmbed(self, title : str, description : str = None, color : int = 0, fields : list = None, ping : str = None) -> bool:
        embed = self.BuildEmbed(title, description, color, fields)
        content = f"<@&{ping}>" if IsConfigured(ping) else None
        if self._webhook != None:
            self._webhook.send(content=content, embed=embed)
            Log.debug(f"Webhook embed sent: {title}")
            return True
        if self._client == None or not self._client.is_ready():
            Log.warning(f"Discord bot is not connected yet, dropping embed '{title}'")
            return False
        future = asyncio.run_coroutine_threadsafe(self._SendToChannel(content, embed), self._client.loop)
        future.add_done_callback(lambda f : self._OnSendDone(f, title))
        return True

    async def _SendToChannel(self, content : str, embed : discord.Embed):
        channelId = int(self._channelId)
        channel = self._client.get_channel(channelId)
        if channel == None:
            channel = await self._client.fetch_channel(channelId)
        await channel.send(content=content, embed=embed)

    def _OnSendDone(self, future, title : str):
        if future.cancelled():
            Log.warning(f"Discord embed '{title}' was cancelled before it was sent")
            return
        ex = future.exception()
        if ex != None:
            Log.error(f"Failed to send Discord embed '{title}': {ex}")
        else:
            Log.debug(f"Discord embed sent: {title}")
