"""Natural constants in the units used by the fits."""

import numpy as np

# Galactic centre units: milliparsec, year, 10^6 solar masses
c = 306.4  # mpc per yr
G = 4.49  # (mpc)^3 * yr^-2 * (10^6 * M_solar)^-1
D_SGR_A = 8.178e6  # distance of Sagittarius A* in mpc

MAS_PER_RAD = 180.0 / np.pi * 3600.0 * 1000.0

# Cosmology units: megaparsec, gigayear
C_COSMO = 306.4  # Mpc per Gyr
H0 = 0.069  # 1 / Gyr
