"""AI diagnosis: schemas, prompts, provider clients and provider selection."""
