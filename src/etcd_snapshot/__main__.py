from etcd_snapshot.cli.main import main

raise SystemExit(main())
