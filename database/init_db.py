import os
import sys

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from mmg_procurement import create_app, get_workflow_service
from mmg_procurement.db import init_db
from mmg_procurement.seed import seed_sample_procurements


app = create_app()


if __name__ == "__main__":
    with app.app_context():
        init_db()
        if os.environ.get("MMG_SEED_SAMPLE", "0").strip().lower() in {"1", "true", "yes", "on"}:
            summary = seed_sample_procurements(get_workflow_service())
            print(f"Seeded {summary['created']} procurements ({summary['skipped']} already present).")
    print("Database initialized.")
