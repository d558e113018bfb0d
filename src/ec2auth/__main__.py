import sys

from ec2auth.cli import main

sys.exit(main())
