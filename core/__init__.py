# Core: capture, frame buffer, inference scheduler, lifecycle, results.
# Submodules are imported directly (core.lifecycle, core.scheduler, ...); nothing here
# imports Qt or mediapipe, so the loop runs headless.
