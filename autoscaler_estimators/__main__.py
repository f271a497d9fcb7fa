import sys

from autoscaler_estimators.cli import main

sys.exit(main())
