from shadebot.services.flows.registry import CampaignFlow, FlowRegistry, default_registry

__all__ = ["CampaignFlow", "FlowRegistry", "default_registry"]
