import logging

from bepsim import ResultsAggregator, SimulatorFactory, load_config
from bepsim.results.output import write_outputs

logging.basicConfig(level=logging.INFO)

# Load and validate the configuration; this raises before anything is simulated
config = load_config("examples/config/house.yaml")
print("Simulation configuration loaded successfully.")

simulator = SimulatorFactory.create_simulator(config)
print(f"Simulator created with {len(simulator.graph)} components.")

aggregator = ResultsAggregator(simulator.graph)
for _ in range(24):
    aggregator.consume(simulator.step())
print(f"First day: {aggregator.totals.space_heating_delivered_kwh:.1f} kWh of space heating.")

outcome = simulator.run(aggregator)
print(f"Run completed: {outcome.steps_completed} of {outcome.total_steps} steps.")

summary = aggregator.summarize()
print(f"Total cost: {summary.total_cost:.2f}")
print(f"Unmet demand: {summary.unmet_demand_kwh:.2f} kWh over {summary.unmet_hours:.0f} h")

write_outputs(aggregator, config.output.directory, config.output.formats)
