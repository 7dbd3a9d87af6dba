import discord
from redbot.core import commands


def has_active_session():
    """
    A commands.check decorator that fails if the command author has no open garden session.
    Uses the SessionHelper to check the user's status.
    """

    async def predicate(ctx: commands.Context):
        if not hasattr(ctx.cog, 'session_helper'):
            return True

        session = ctx.cog.session_helper.get_session(ctx.author.id)
        if session is None or session.ended:
            embed = discord.Embed(
                title="🚪 The Garden Gate Is Closed",
                description=f"{ctx.author.mention}, you are not in the garden right now. "
                            f"Use `{ctx.clean_prefix}garden start` to step inside.",
                color=discord.Color.orange()
            )
            await ctx.send(embed=embed, delete_after=15)
            return False
        return True

    return commands.check(predicate)


def is_cog_ready():
    """
    A commands.check decorator that fails if the cog's data has not yet been loaded.
    This prevents commands from running during the initial startup sequence.
    """

    async def predicate(ctx: commands.Context):
        if not getattr(ctx.cog, '_initialized', False):
            embed = discord.Embed(
                title="⏳ The Gnome Is Waking Up",
                description="The garden is still getting ready. Please wait a moment and try again.",
                color=discord.Color.orange()
            )
            await ctx.send(embed=embed, delete_after=10)
            return False
        return True

    return commands.check(predicate)
