from .gnomegarden import GnomeGarden


async def setup(bot):
    await bot.add_cog(GnomeGarden(bot))
