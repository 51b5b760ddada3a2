"""Test package for the Geometry Trainer.

Core modules (geometry, shape generation, line sets, hit testing, session
and progress) are tested directly with a fake clock; the pygame UI is
exercised headlessly through the SDL dummy video driver. Run ``pytest``
from the project root.
"""
