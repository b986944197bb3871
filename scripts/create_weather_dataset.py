"""Write a synthetic hourly weather and tariff file for the example configuration."""

import numpy as np
import pandas as pd

num_days = 7
start_time = pd.Timestamp("2023-01-02 00:00:00")

time_index = pd.date_range(start=start_time, periods=num_days * 24 + 1, freq="h")
hours = np.arange(len(time_index))

rng = np.random.default_rng(42)
hour_of_day = hours % 24
outdoor = 3.0 - 4.0 * np.cos(2 * np.pi * (hour_of_day - 3) / 24) + rng.normal(0.0, 0.5, len(hours))
irradiance = np.clip(400.0 * np.sin(np.pi * (hour_of_day - 8) / 8), 0.0, None)
irradiance[(hour_of_day < 8) | (hour_of_day > 16)] = 0.0
tariff = np.where((hour_of_day >= 16) & (hour_of_day < 19), 0.42, 0.24)

df = pd.DataFrame({
    "time": time_index,
    "dry_bulb": outdoor.round(2),
    "ghi": irradiance.round(1),
    "tariff": tariff,
})

# Store time as seconds since epoch
df["time"] = df["time"].astype("int64") // 10**9

df.to_csv("examples/config/weather.csv", index=False)
print("Synthetic weather.csv with integer time created!")
