"""
Custom bot webhook integration.

Usage:
    from openlark.custom_bot import CustomBot
    from openlark.service.im.v1 import TextMessage

    async with CustomBot(webhook_url, secret="xxx") as bot:
        await bot.send_message(TextMessage("hello"))
"""

from openlark.custom_bot.bot import CustomBot, PayloadField
from openlark.custom_bot.signature import sign

__all__ = ["CustomBot", "PayloadField", "sign"]
