"""Price store (mat prices, Optibrush tiers, custom m² rates, settings)."""
