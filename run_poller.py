"""
Run the TSETMC to Excel poller from a source checkout.
"""
import os
import sys

# appsettings.json and .env are looked up in the project root
project_dir = os.path.dirname(os.path.abspath(__file__))
os.chdir(project_dir)
sys.path.insert(0, project_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(project_dir, ".env"))

from tsetmc_excel.main import main

if __name__ == "__main__":
    print("Starting TSETMC to Excel poller...")
    print(f"Project directory: {project_dir}")
    print("Type 'q' and press Enter to stop.")
    print("-" * 50)

    sys.exit(main())
