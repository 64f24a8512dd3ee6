from sse_relay.cli import main

raise SystemExit(main())
