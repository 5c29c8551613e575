# This file is part of netrender. See LICENSE file for license information.

import logging
import os
import stat
import tempfile

from netrender import util

DEFAULT_PERMS = 0o644
LOG = logging.getLogger(__name__)


def existing_mode(filename, default):
    """Return the permission bits of filename, or default if it is absent."""
    try:
        return stat.S_IMODE(os.stat(filename).st_mode)
    except FileNotFoundError:
        return default


def write_file(
    filename, content, mode=DEFAULT_PERMS, omode="wb", preserve_mode=False
):
    """Replace filename with content in a single rename.

    The content goes to a temporary file in the same directory first, so
    readers see either the old or the new file and never a partial one.
    With preserve_mode an existing file keeps its permissions.
    """
    if preserve_mode:
        mode = existing_mode(filename, mode)
    dirname = os.path.dirname(filename)
    util.ensure_dir(dirname)

    with tempfile.NamedTemporaryFile(
        dir=dirname, prefix=".netrender-", delete=False, mode=omode
    ) as tf:
        tmp_name = tf.name
        try:
            tf.write(content)
        except BaseException:
            os.unlink(tmp_name)
            raise
    LOG.debug(
        "Atomically writing %d bytes/chars to %s [%o] via %s",
        len(content),
        filename,
        mode,
        tmp_name,
    )
    try:
        os.chmod(tmp_name, mode)
        os.rename(tmp_name, filename)
    except OSError:
        os.unlink(tmp_name)
        raise
