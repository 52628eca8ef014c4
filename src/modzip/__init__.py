"""Package Factorio mods into versioned zips and install them."""
