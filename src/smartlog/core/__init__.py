"""Core domain: severity scale, records, delivery queue and the agent."""
