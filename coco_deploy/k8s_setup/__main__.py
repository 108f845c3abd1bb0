"""Allow ``python -m coco_deploy.k8s_setup``."""

from __future__ import annotations

import sys

from coco_deploy.k8s_setup.cli import main

sys.exit(main())
