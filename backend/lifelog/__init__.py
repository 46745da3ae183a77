"""Free-text life-logging core: intents, slots, dates, units, and expressions."""
