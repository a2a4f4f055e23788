""" Gunicorn server hooks.

    Metrics are collected across worker processes by prometheus_client's
    multiprocess mode, which needs PROMETHEUS_MULTIPROC_DIR to point at an
    empty directory when the server starts.
"""
import os
import shutil
import prometheus_client.multiprocess

bind = os.environ.get("CFP_BIND", "127.0.0.1:5000")
workers = int(os.environ.get("CFP_WORKERS", "4"))


def on_starting(server):
    prometheus_dir = os.environ.get("PROMETHEUS_MULTIPROC_DIR")
    if not prometheus_dir:
        raise RuntimeError("PROMETHEUS_MULTIPROC_DIR must be set to collect metrics")

    if os.path.exists(prometheus_dir):
        shutil.rmtree(prometheus_dir)
    os.makedirs(prometheus_dir, exist_ok=True)
    server.log.info("Collecting metrics in %s", prometheus_dir)


def child_exit(server, worker):
    # Live gauges are summed over running workers only
    prometheus_client.multiprocess.mark_process_dead(worker.pid)
