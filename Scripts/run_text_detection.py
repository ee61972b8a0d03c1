"""
Run EAST text detection over an image or a directory of images.

Example:
    python Scripts/run_text_detection.py Media/ --model Models/frozen_east_text_detection.pb --mode EXTRACT
"""

from Text_Detection.runner import main


if __name__ == "__main__":
    raise SystemExit(main())
