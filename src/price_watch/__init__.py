"""Token price alerts and explorer address subscriptions for mobile watchers."""
