"""Operations: structured logging configuration and health endpoints."""
