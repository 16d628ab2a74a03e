"""Run the motion display demo: python -m motion_display"""

from motion_display.app import main

if __name__ == "__main__":
    main()
