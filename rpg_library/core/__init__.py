# RPG Library Core Package
