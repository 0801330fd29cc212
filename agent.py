import sys

from enhancer.Agent import main

# e.g. python agent.py "I run a small bakery in Mong Kok, see https://example.com" -v
sys.exit(main())
