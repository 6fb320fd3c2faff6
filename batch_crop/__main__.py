import sys

from batch_crop.main import run

sys.exit(run())
