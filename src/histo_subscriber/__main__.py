import sys

from histo_subscriber.main import main


sys.exit(main())
