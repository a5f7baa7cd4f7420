#
# Copyright 2026 Hannes Holey
#
# ### MIT License
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
from __future__ import annotations

import logging
import os
import sys
from typing import Optional


def _default_filename_for(name: str) -> str:
    # 'laghydro.hydro' -> 'laghydro_hydro.log'
    return name.replace('.', '_') + '.log'


def get_logger(name: str,
               outdir: Optional[str] = None,
               filename: Optional[str] = None,
               level: int = logging.INFO,
               force: bool = False) -> logging.Logger:
    """Return a standardised logger for LagHydro modules.

    Parameters
    ----------
    name : str
        Name of the logger, e.g. ``'laghydro.hydro'``.
    outdir : str, optional
        Directory for an additional logfile (the default is None, which only
        writes to stdout).
    filename : str, optional
        Logfile name inside ``outdir`` (the default is None, which derives
        the name from ``name``).
    level : int, optional
        Log level (the default is logging.INFO)
    force : bool, optional
        Drop handlers attached by an earlier call so that the logger can be
        redirected (the default is False).

    Returns
    -------
    logging.Logger
        The configured logger.
    """
    logger = logging.getLogger(name)

    if force:
        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()

    if logger.handlers:
        return logger

    logger.setLevel(level)

    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(logging.Formatter('%(message)s'))
    logger.addHandler(sh)

    if outdir is not None:
        os.makedirs(outdir, exist_ok=True)
        if filename is None:
            filename = _default_filename_for(name)
        fh = logging.FileHandler(os.path.join(outdir, filename))
        fh.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
        logger.addHandler(fh)

    logger.propagate = False

    return logger
