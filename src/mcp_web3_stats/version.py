from typing import Final

VERSION: Final[str] = "2.0.0"
SERVER_NAME: Final[str] = "mcp-web3-stats"
