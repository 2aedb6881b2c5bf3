"""Client onboarding: flows, node progress and contract signatures."""
