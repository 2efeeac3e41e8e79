"""Truck Repair Assistant -- diagnosis, truck data and service lookup API.

Serves AI-assisted truck diagnosis over Azure OpenAI, Azure AI Foundry
agents and GitHub Models, plus truck catalogue, fleet records, service
location search and reference data.
"""

__version__ = "2.1.0"
