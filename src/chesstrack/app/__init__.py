"""Application layer for chesstrack."""
