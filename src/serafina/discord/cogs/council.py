from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ...guardians import BROADCAST

LOG = logging.getLogger("serafina.discord.council")


class CouncilCog(commands.Cog):
    """Slash commands for the council report and the guardian relay."""

    def __init__(self, bot):
        self.bot = bot

    @app_commands.command(name="councilreport", description="Generate the council report immediately.")
    async def councilreport(self, interaction: discord.Interaction):
        """Run the council report now and acknowledge once it has been dispatched."""
        await interaction.response.defer(ephemeral=True)
        try:
            await self.bot.generate_council_report()
        except Exception as e:
            LOG.exception("Manual council report failed")
            await interaction.edit_original_response(content=f"Council report failed: {e}")
            return
        await interaction.edit_original_response(content="Council report dispatched.")

    @app_commands.command(name="guardian", description="Relay a message to the guardian council.")
    @app_commands.describe(message="What to say", to="Guardian name, or * for everyone")
    async def guardian(self, interaction: discord.Interaction, message: str, to: str = BROADCAST):
        """Feed a message into the ops bus on behalf of the invoking user."""
        author = getattr(interaction.user, "display_name", None) or str(interaction.user)
        self.bot.relay.relay(author, message, to=to)

        lilybear = self.bot.guardian("Lilybear")
        heard = lilybear.last_message if lilybear is not None and lilybear.last_message else "(nothing)"
        await interaction.response.send_message(
            f"Relayed to {len(self.bot.guardians)} guardians. Lilybear heard: {heard}", ephemeral=True
        )


async def setup(bot):
    await bot.add_cog(CouncilCog(bot))
