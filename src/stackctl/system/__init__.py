"""External command helpers: PATH probes, subprocess seam, vendor CLIs."""
