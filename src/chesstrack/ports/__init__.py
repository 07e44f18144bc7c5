"""Port interfaces for chesstrack boundaries."""
