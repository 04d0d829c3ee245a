from linkbio.cli import serve_main

raise SystemExit(serve_main())
