import sys
from halifax_housing.report import main

sys.exit(main())
