"""Infrastructure layer: persistence, delivery channels and queue workers."""
