#!/usr/bin/env python3
# -*- coding: utf-8 -*-

try:
    import resource
except ImportError:
    # not available on Windows
    resource = None

from utils.Logger import Logger


def desired_open_file_limit(relay_count: int) -> int:
    """Two descriptors per relay, plus one."""
    return relay_count * 2 + 1


def ensure_open_file_limit(relay_count: int, logger=Logger) -> bool:
    """
    Raise the soft RLIMIT_NOFILE when it cannot hold one socket per relay.
    Returns True when the limit is sufficient afterwards.
    """
    if resource is None:
        return True

    desired = desired_open_file_limit(relay_count)
    try:
        soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    except (OSError, ValueError) as exc:
        logger.warning(
            f"Unable to fetch the open file limit ({exc}). Some ports may fail to listen, "
            f"if so run `ulimit -n {desired}` and restart."
        )
        return False

    if soft == resource.RLIM_INFINITY or soft > relay_count:
        return True

    if hard != resource.RLIM_INFINITY:
        desired = min(desired, hard)

    logger.debug(f"Open file limit ({soft}) is too low, raising it to {desired}")
    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (desired, hard))
    except (OSError, ValueError) as exc:
        logger.warning(
            f"Unable to raise the open file limit to {desired} ({exc}). Some ports may fail "
            f"to listen, if so run `ulimit -n {desired}` and restart."
        )
        return False

    logger.debug(f"Open file limit set to {desired}")
    return desired > relay_count
