"""HTTP routers for the Kongeleken game server."""
