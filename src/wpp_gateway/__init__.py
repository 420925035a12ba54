"""Multi-tenant WhatsApp gateway with dual daily quotas."""
