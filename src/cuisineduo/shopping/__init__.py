"""CuisineDuo - Shopping lists generated from recipes minus what is in stock."""
