"""Per-trip derived features: temporal buckets and airport flags."""
