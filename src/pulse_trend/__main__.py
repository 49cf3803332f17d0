from pulse_trend import main


raise SystemExit(main())
