"""Authority authentication."""
