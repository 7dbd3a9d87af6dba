from .checks import has_active_session, is_cog_ready
