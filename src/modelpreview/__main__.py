"""
Run with: python -m modelpreview
"""
from modelpreview.main import main

if __name__ == "__main__":
    main()
