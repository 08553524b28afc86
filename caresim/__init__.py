"""CareSim progress aggregation and certificate-eligibility engine."""
