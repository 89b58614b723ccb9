import numpy as np


class Trajectory:

    def __init__(self,tInterp,xInterp,xpInterp):
        self.tInterp = tInterp
        self.xInterp = xInterp
        self.xpInterp = xpInterp

    def __len__(self):
        return self.tInterp.shape[0]


def interpolate_min_jerk(X, Y, x):
    """Position, velocity and acceleration of a min-jerk profile through (X, Y) at x."""
    n = X.shape[0]
    i = 0  # left end of the interpolation interval

    if x <= X[0] :
        return [Y[0],0,0]

    elif x >= X[n-1]:
        return [Y[n-1],0,0]

    else :
        while x > X[i + 1]:
            i+=1

        d = X[i+1] - X[i]
        dy = Y[i+1] - Y[i]
        s = (x - X[i]) / d  # normalized time within the segment

        y = Y[i] + dy*(10*s**3 - 15*s**4 + 6*s**5)
        yp = dy*(30*s**2 - 60*s**3 + 30*s**4)/d
        ypp = dy*(60*s - 180*s**2 + 120*s**3)/d**2

        return [y,yp,ypp]


def interpolate_trajectory(t, points, nInterp):
    """
    Samples a min-jerk trajectory through the waypoints `points` (one row
    per time in `t`, any number of columns) at nInterp evenly spaced times.
    """
    t = np.asarray(t, dtype=float)
    points = np.asarray(points, dtype=float)
    if points.ndim != 2 or points.shape[0] != t.shape[0]:
        raise ValueError(f"need one waypoint per time, got {points.shape} for {t.shape[0]} times")
    if nInterp < 2:
        raise ValueError("nInterp must be at least 2")

    n = t.shape[0]
    tf = t[n-1]
    dt = tf / (nInterp - 1)
    dim = points.shape[1]

    tInterp = np.zeros((nInterp,1))
    xInterp = np.zeros((nInterp,dim))
    xpInterp = np.zeros((nInterp,dim))

    for i in range(nInterp):
        ct = i * dt
        tInterp[i] = ct

        for j in range(dim):
            Y = interpolate_min_jerk(t, points[:,j], ct)
            xInterp[i, j] = Y[0]
            xpInterp[i, j] = Y[1]

    return Trajectory(tInterp,xInterp,xpInterp)
