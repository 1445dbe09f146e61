import sys

from ledger_mcp.server import main

sys.exit(main())
