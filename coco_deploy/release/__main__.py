"""Allow ``python -m coco_deploy.release``."""

from __future__ import annotations

import sys

from coco_deploy.release.cli import main

sys.exit(main())
