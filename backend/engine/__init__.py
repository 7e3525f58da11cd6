"""Lease economics engine: pure, synchronous computation over LeaseTerms."""
