from opengraph_scan.cli import main

raise SystemExit(main())
