"""Tool providers.

Each provider contributes one group of tools:
- database: Supabase table and SQL access, and the Supabase Management API
- video_generation / audio_generation: MoneyPrinterTurbo

Providers share no state with each other.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcp_server.registry import ToolRegistry
    from providers.base import ToolProvider
    from shared.config import Settings


def load_all_providers(registry: "ToolRegistry", settings: "Settings") -> list["ToolProvider"]:
    """
    Create every provider and register its tools.

    Called once by the composition root before serving traffic. Returns
    the providers so their resources can be released on shutdown.
    """
    from providers.database import SupabaseToolsProvider
    from providers.management import SupabaseManagementProvider
    from providers.video import MoneyPrinterToolsProvider

    providers: list["ToolProvider"] = [
        SupabaseToolsProvider(settings.supabase),
        SupabaseManagementProvider(settings.supabase),
        MoneyPrinterToolsProvider(),
    ]

    for provider in providers:
        provider.register_tools(registry)

    return providers


__all__ = ["load_all_providers"]
