"""
MANGO TOUR runner
Loads the site data once, then serves the public site API (Flask, background
thread) and the admin back office (FastAPI/uvicorn, main thread). Pending
debounced writes are flushed on shutdown.

Usage:
    mango-tour                # site + admin
    mango-tour site           # public site API only
    mango-tour admin          # admin back office only
"""

import os
import sys
import threading
import logging
import traceback
import signal
from typing import Set

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from utils import Config
from services.registry import AppServices, build_services, set_services
from api import run_flask_app, set_services as set_site_services

# ============================================================================
# CONSTANTS
# ============================================================================
VALID_SERVICES = {"all", "site", "admin"}

SERVICE_DESCRIPTIONS = {
    "all":    "Site API + admin back office",
    "site":   "Public site API (Flask)",
    "admin":  "Admin back office (FastAPI)",
}

# ============================================================================
# LOGGING
# ============================================================================
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    handlers=[
        logging.FileHandler("mango_tour.log", encoding="utf-8"),
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger("Main")

# ============================================================================
# SHARED STOP FLAG
# ============================================================================
STOP_EVENT = threading.Event()


# ============================================================================
# CLI PARSING
# ============================================================================
def parse_services(args: list[str]) -> Set[str]:
    """
    Service names from the command line (program name excluded).
    "all" or no argument selects every service.
    """
    names = {a.lower().strip() for a in args if a.strip()}
    if names & {"--help", "-h"}:
        print_help()
        sys.exit(0)

    unknown = names - VALID_SERVICES
    if unknown:
        print(f"✗ Unknown service(s): {', '.join(sorted(unknown))}")
        print(f"  Choose from: {', '.join(sorted(VALID_SERVICES))} (see --help)")
        sys.exit(1)

    if not names or "all" in names:
        return {"site", "admin"}
    return names


def print_help():
    print(__doc__)
    print("Services:")
    for name in sorted(SERVICE_DESCRIPTIONS):
        print(f"  {name:<8} {SERVICE_DESCRIPTIONS[name]}")


# ============================================================================
# RUNNERS
# ============================================================================
def run_site(services: AppServices):
    """Run the Flask site API in a thread."""
    try:
        logger.info("[SITE] Starting site API...")
        set_site_services(services)
        run_flask_app(host=Config.SITE_HOST, port=Config.SITE_PORT)
    except Exception as e:
        logger.error(f"[SITE] Critical error: {e}")
        logger.error(traceback.format_exc())
        STOP_EVENT.set()


def run_admin():
    """Run the admin back office on the main thread until stopped."""
    import uvicorn
    from admin.main import app

    server = uvicorn.Server(uvicorn.Config(app, host=Config.ADMIN_HOST, port=Config.ADMIN_PORT, log_level="warning"))

    def stop_watcher():
        STOP_EVENT.wait()
        server.should_exit = True

    threading.Thread(target=stop_watcher, name="AdminStopWatcher", daemon=True).start()

    try:
        logger.info(f"[ADMIN] Starting admin back office on {Config.ADMIN_HOST}:{Config.ADMIN_PORT}...")
        server.run()
    except Exception as e:
        logger.critical(f"[ADMIN] Critical error: {e}")
        logger.critical(traceback.format_exc())
    finally:
        STOP_EVENT.set()


# ============================================================================
# MAIN
# ============================================================================
def main():
    # ---- Parse CLI ---------------------------------------------------------
    requested = parse_services(sys.argv[1:])

    logger.info("=" * 70)
    logger.info(f"{Config.SITE_NAME} STARTING")
    logger.info(f"  Services: {', '.join(sorted(requested))}")
    logger.info("=" * 70)

    # ---- Validate config ---------------------------------------------------
    try:
        Config.validate()
        logger.info("[CONFIG] All environment variables validated ✓")
    except ValueError as e:
        logger.critical(f"[CONFIG] Configuration error: {e}")
        sys.exit(1)

    # ---- Build shared services and load data -------------------------------
    logger.info("[DATA] Building services...")
    services = build_services(Config)
    set_services(services)
    services.auth.seed_users()

    logger.info("[DATA] Loading site data...")
    services.controller.load()
    logger.info(f"[DATA] Site data ready ({services.controller.status_badge()}) ✓")

    # ---- Signal handling ---------------------------------------------------
    def _handle_signal(signum, frame):
        logger.warning(f"[MAIN] Signal {signum} received. Shutting down...")
        STOP_EVENT.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except ValueError:
        logger.warning("[MAIN] Signal handlers unavailable outside the main thread")

    # ---- Start requested services ------------------------------------------
    if "site" in requested:
        site_thread = threading.Thread(
            target=run_site, args=(services,), name="SiteThread", daemon=True
        )
        site_thread.start()
        logger.info("[MAIN] Site API thread started ✓")

    if "admin" in requested:
        run_admin()
    else:
        logger.info("[MAIN] No admin service selected. Main thread waiting...")
        try:
            while not STOP_EVENT.is_set():
                STOP_EVENT.wait(timeout=1.0)
        except KeyboardInterrupt:
            logger.info("[MAIN] Shutdown signal received (Ctrl+C)")
            STOP_EVENT.set()

    # ---- Shutdown ----------------------------------------------------------
    STOP_EVENT.set()
    logger.info("[MAIN] Flushing pending writes...")
    services.controller.close()

    logger.info("=" * 70)
    logger.info("APPLICATION SHUTDOWN COMPLETE")
    logger.info("=" * 70)


if __name__ == "__main__":
    main()
