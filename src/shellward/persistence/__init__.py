"""On-disk records kept per connection."""
