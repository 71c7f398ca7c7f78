"""Allow running as: python -m dealbrief COMPANY DOMAIN"""

from dealbrief.cli import main

main()
