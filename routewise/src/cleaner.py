import datetime, logging
from routewise.src.db import sessionMaker, AdminSession
from sqlalchemy.orm import Session
from sqlalchemy import delete

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("Cleaner")


def removeExpiredSessions(session: Session) -> int:
    currentTime = datetime.datetime.now(datetime.timezone.utc)
    result = session.execute(
        delete(AdminSession).where(AdminSession.expires_at < currentTime)
    )
    session.commit()
    deletedCount = result.rowcount
    logger.info(f"Removed {deletedCount} sessions from {AdminSession.__tablename__} table")
    return deletedCount


def main():
    try:
        with sessionMaker() as session:
            removeExpiredSessions(session)
    except Exception:
        logger.exception("cleaner.py failed")


if __name__ == "__main__":
    main()
